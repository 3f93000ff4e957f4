# Routers package
from . import verification_router

__all__ = [
    "verification_router",
]
