"""Application layer: DTOs, ports and cache services."""
