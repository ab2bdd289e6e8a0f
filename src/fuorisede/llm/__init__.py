"""
Chef Fuori-Sede - LLM Client.

Provides structured, vision and image calls against the generative backend.
"""

from fuorisede.llm.client import (
    call_image_model,
    call_llm,
    call_llm_vision,
    get_client,
    get_raw_async_client,
)
from fuorisede.llm.model_router import get_model

__all__ = [
    "get_client",
    "get_raw_async_client",
    "call_llm",
    "call_llm_vision",
    "call_image_model",
    "get_model",
]
