"""Building blocks composed into Walker."""

from .protection import ProtectionViolation, TraversalProtection
from .walker_queue import WalkerQueue
from .walker_trail import WalkerTrail

__all__ = [
    "ProtectionViolation",
    "TraversalProtection",
    "WalkerQueue",
    "WalkerTrail",
]
