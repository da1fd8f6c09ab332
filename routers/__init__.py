"""
Routers Module

API routers for the FormEase application.
"""

from .conversation import router as conversation_router
from .forms import router as forms_router
from .nlp import router as nlp_router
from .speech import router as speech_router

__all__ = ["conversation_router", "forms_router", "nlp_router", "speech_router"]
