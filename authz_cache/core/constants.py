"""Core constants: cache key namespaces and bounded-history capacities.

Single source of truth for key structure (DRY). Keys under CACHE_NAMESPACE
are cached lookups and are subject to the idle sweep; keys under
PERFORMANCE_NAMESPACE must carry a TTL or the stale sweep removes them.
"""

# Delimiter for composite keys
CACHE_KEY_SEP = ":"

# Top-level namespaces
CACHE_NAMESPACE = "cache"
PERFORMANCE_NAMESPACE = "performance"
STATS_NAMESPACE = "stats"

# Bounded in-memory histories
CACHE_EVENT_HISTORY_CAPACITY = 1000
WARMUP_HISTORY_CAPACITY = 100

# Memory cleanup
IDLE_KEY_MAX_SECONDS = 3600
STORE_SCAN_COUNT = 1000

# Recommendation thresholds
KEY_COUNT_HIGH = 100_000
CACHE_SIZE_HEALTHY_MAX = 10_000
ADAPTIVE_LEARNING_COOLDOWN_HOURS = 6

# Health probe key (short TTL, deleted right after the round trip)
HEALTH_CHECK_KEY = "health:check"
