from .praise import Praise

__all__ = ["Praise"]
