from .service import PraiseService

__all__ = ["PraiseService"]
