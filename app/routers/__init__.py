# app/routers/__init__.py

from .quotes.quote_router import router as quote_router
from .quotes.artwork_router import router as artwork_router
from .quotes.public_router import router as public_router

from .support.activity_router import router as activity_router


__all__ = [
"quote_router",
"artwork_router",
"public_router",

"activity_router",
]
