"""
Chef Fuori-Sede - LLM Client.

Wraps the async OpenAI client with Instructor for schema-validated outputs.
Every backend call goes through here for consistency and prompt logging.

Three call shapes:
- call_llm: prompt -> validated Pydantic model (recipes, shopping lists)
- call_llm_vision: image + prompt -> free text (fridge analysis)
- call_image_model: prompt -> base64 image payload (dish pictures)
"""

import base64
from typing import TypeVar

import instructor
from openai import AsyncOpenAI
from pydantic import BaseModel

from fuorisede.config import settings
from fuorisede.llm.model_router import get_operation_config
from fuorisede.llm.prompt_logger import log_prompt

T = TypeVar("T", bound=BaseModel)

# Singleton client instances
_client: instructor.AsyncInstructor | None = None
_raw_client: AsyncOpenAI | None = None


def get_raw_async_client() -> AsyncOpenAI:
    """Get the plain async OpenAI client (vision and image calls)."""
    global _raw_client

    if _raw_client is None:
        _raw_client = AsyncOpenAI(api_key=settings.openai_api_key)

    return _raw_client


def get_client() -> instructor.AsyncInstructor:
    """
    Get the Instructor-wrapped async OpenAI client.

    Uses singleton pattern to reuse connection.
    """
    global _client

    if _client is None:
        _client = instructor.from_openai(get_raw_async_client())

    return _client


async def call_llm(
    *,
    response_model: type[T],
    prompt: str,
    operation: str,
    system_prompt: str | None = None,
    max_retries: int = 2,
) -> T:
    """
    Make a structured LLM call with guaranteed schema compliance.

    Instructor re-asks up to max_retries times when the response does not
    validate; after that it raises and the caller classifies the failure.

    Args:
        response_model: Pydantic model class for the response
        prompt: User message with the actual request
        operation: Backend operation name, used for model config and logging
        system_prompt: Optional system message
        max_retries: Number of retries if response doesn't match schema

    Returns:
        Instance of response_model with validated data
    """
    client = get_client()
    config = get_operation_config(operation)
    model = config.pop("model")

    messages = []
    if system_prompt:
        messages.append({"role": "system", "content": system_prompt})
    messages.append({"role": "user", "content": prompt})

    try:
        response = await client.chat.completions.create(
            model=model,
            messages=messages,
            response_model=response_model,
            max_retries=max_retries,
            temperature=config.get("temperature", 0.5),
        )

        log_prompt(
            operation=operation,
            model=model,
            system_prompt=system_prompt,
            prompt=prompt,
            response_model=response_model.__name__,
            response=response,
            config=config,
        )

        return response

    except Exception as e:
        log_prompt(
            operation=operation,
            model=model,
            system_prompt=system_prompt,
            prompt=prompt,
            response_model=response_model.__name__,
            error=str(e),
            config=config,
        )
        raise


async def call_llm_vision(
    *,
    prompt: str,
    image_bytes: bytes,
    mime_type: str,
    operation: str = "analyze",
) -> str | None:
    """
    Ask the vision model about an image.

    Returns the raw text content, or None when the model returned no text.
    """
    client = get_raw_async_client()
    config = get_operation_config(operation)
    model = config.pop("model")

    data_url = f"data:{mime_type};base64,{base64.b64encode(image_bytes).decode('ascii')}"
    messages = [
        {
            "role": "user",
            "content": [
                {"type": "image_url", "image_url": {"url": data_url}},
                {"type": "text", "text": prompt},
            ],
        }
    ]

    try:
        completion = await client.chat.completions.create(
            model=model,
            messages=messages,
            temperature=config.get("temperature", 0.1),
        )
        content = completion.choices[0].message.content

        log_prompt(
            operation=operation,
            model=model,
            prompt=prompt,
            response_model="text",
            response=content,
            config=config,
        )

        return content

    except Exception as e:
        log_prompt(
            operation=operation,
            model=model,
            prompt=prompt,
            response_model="text",
            error=str(e),
            config=config,
        )
        raise


async def call_image_model(*, prompt: str, operation: str = "image") -> str | None:
    """
    Generate one image for a prompt.

    Returns the base64-encoded PNG payload, or None when the response
    carried no image data.
    """
    client = get_raw_async_client()
    config = get_operation_config(operation)
    model = config.pop("model")

    kwargs = {"model": model, "prompt": prompt, "n": 1, "size": config.get("size", "1024x1024")}
    # gpt-image models always return base64; dall-e needs asking
    if model.startswith("dall-e"):
        kwargs["response_format"] = "b64_json"

    try:
        result = await client.images.generate(**kwargs)
        payload = result.data[0].b64_json if result.data else None

        log_prompt(
            operation=operation,
            model=model,
            prompt=prompt,
            response_model="image",
            response=payload,
            config=config,
        )

        return payload

    except Exception as e:
        log_prompt(
            operation=operation,
            model=model,
            prompt=prompt,
            response_model="image",
            error=str(e),
            config=config,
        )
        raise
