"""Infrastructure: Redis store, SQL authorization source, scheduling."""
