from .base import Base

# import models so metadata-driven tooling can discover mappers
from .draw_cache import CachedDraw, CachedWinner  # noqa: F401

__all__ = [
    "Base",
    "CachedDraw",
    "CachedWinner",
]
