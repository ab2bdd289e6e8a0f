"""
Chef Fuori-Sede - Model Router.

Selects model and sampling parameters for each backend operation.

Operations:
- analyze: fridge photo -> ingredient list (vision model, deterministic)
- recipes: recipe batch generation (text model, creative)
- regenerate: single replacement recipe (text model, more creative)
- shopping: missing-ingredient diff (text model, deterministic)
- image: dish illustration (image model)
"""

from typing import Literal, TypedDict

from fuorisede.config import settings

Operation = Literal["analyze", "recipes", "regenerate", "shopping", "image"]


class ModelConfig(TypedDict, total=False):
    """Configuration for model calls."""

    model: str
    temperature: float
    size: str  # image operations only


# Lower = more deterministic, higher = more creative
OPERATION_TEMPERATURE: dict[str, float] = {
    "analyze": 0.1,  # Listing what is visible, no invention
    "recipes": 0.7,
    "regenerate": 0.8,  # Must land somewhere new
    "shopping": 0.2,
}

# Which settings field holds the model name for each operation
_MODEL_SETTING: dict[str, str] = {
    "analyze": "vision_model",
    "recipes": "text_model",
    "regenerate": "text_model",
    "shopping": "text_model",
    "image": "image_model",
}

DEFAULT_CONFIG: ModelConfig = {
    "model": "gpt-4.1-mini",
    "temperature": 0.5,
}


def get_model(operation: Operation | str) -> str:
    """
    Get the model name configured for an operation.

    Unknown operations get the default text model.
    """
    setting = _MODEL_SETTING.get(operation)
    if setting is None:
        return DEFAULT_CONFIG["model"]
    return getattr(settings, setting)


def get_operation_config(operation: Operation | str) -> ModelConfig:
    """
    Get full model configuration for an operation.

    Returns a fresh dict each call so callers may pop/modify it.
    """
    if operation == "image":
        return {"model": get_model("image"), "size": settings.image_size}

    config: ModelConfig = DEFAULT_CONFIG.copy()
    config["model"] = get_model(operation)
    if operation in OPERATION_TEMPERATURE:
        config["temperature"] = OPERATION_TEMPERATURE[operation]
    return config
