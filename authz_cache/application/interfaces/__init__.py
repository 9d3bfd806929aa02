"""Application interfaces (ports): repository and service protocols.

Define contracts for infrastructure implementations (DIP).
No runtime imports from authz_cache.infrastructure.
"""

from authz_cache.application.interfaces.repositories import IAuthorizationSource
from authz_cache.application.interfaces.services import (
    ICacheWarmupService,
    IKeyValueStore,
)

__all__ = [
    "IAuthorizationSource",
    "ICacheWarmupService",
    "IKeyValueStore",
]
