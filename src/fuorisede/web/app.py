"""
Chef Fuori-Sede Web API - FastAPI application.

JSON surface for a single local user: every endpoint calls one controller
operation and returns the resulting session snapshot. Backend failures are
reported in the snapshot's `error` fields, not as HTTP errors.
"""

import base64
import binascii
import logging
from functools import lru_cache
from typing import Any, Literal

from fastapi import Depends, FastAPI, HTTPException
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, Field, TypeAdapter

from fuorisede import __version__
from fuorisede.config import settings
from fuorisede.controller import RecipeSessionController, SessionState
from fuorisede.errors import InputValidationError
from fuorisede.generation import GenerationClient
from fuorisede.models import MAX_SERVINGS, MIN_SERVINGS, Recipe, RecipeRequest
from fuorisede.storage import JsonFileStore

logger = logging.getLogger(__name__)

app = FastAPI(title="Chef Fuori-Sede", version=__version__)

_state_adapter = TypeAdapter(SessionState)


@lru_cache
def get_controller() -> RecipeSessionController:
    """The single session controller, created on first use."""
    return RecipeSessionController(GenerationClient(), JsonFileStore(settings.storage_path))


def _snapshot(state: SessionState) -> dict[str, Any]:
    return _state_adapter.dump_python(state, mode="json")


# =============================================================================
# Models
# =============================================================================


class TextRequest(BaseModel):
    text: str = ""


class ServingsRequest(BaseModel):
    servings: int = Field(ge=MIN_SERVINGS, le=MAX_SERVINGS)


class ImageRequest(BaseModel):
    title: str


class FridgePhotoRequest(BaseModel):
    image_base64: str
    mime_type: str = "image/jpeg"


class OperationResponse(BaseModel):
    applied: bool
    state: dict[str, Any]


# =============================================================================
# Routes
# =============================================================================


@app.get("/health")
async def health_check():
    return {"status": "healthy"}


@app.get("/state")
async def get_state(controller: RecipeSessionController = Depends(get_controller)):
    return _snapshot(controller.state)


@app.post("/recipes", response_model=OperationResponse)
async def request_recipes(
    request: RecipeRequest,
    controller: RecipeSessionController = Depends(get_controller),
):
    try:
        applied = await controller.request_batch(request)
    except InputValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return OperationResponse(applied=applied, state=_snapshot(controller.state))


@app.post("/recipes/{index}/regenerate", response_model=OperationResponse)
async def regenerate_recipe(index: int, controller: RecipeSessionController = Depends(get_controller)):
    try:
        applied = await controller.regenerate_recipe(index)
    except InputValidationError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return OperationResponse(applied=applied, state=_snapshot(controller.state))


@app.post("/select", response_model=OperationResponse)
async def select_recipe(recipe: Recipe, controller: RecipeSessionController = Depends(get_controller)):
    applied = await controller.select_recipe(recipe)
    return OperationResponse(applied=applied, state=_snapshot(controller.state))


@app.post("/images/regenerate", response_model=OperationResponse)
async def regenerate_image(body: ImageRequest, controller: RecipeSessionController = Depends(get_controller)):
    applied = await controller.regenerate_image(body.title)
    return OperationResponse(applied=applied, state=_snapshot(controller.state))


@app.post("/favorites/toggle", response_model=OperationResponse)
async def toggle_favorite(recipe: Recipe, controller: RecipeSessionController = Depends(get_controller)):
    applied = controller.toggle_favorite(recipe)
    return OperationResponse(applied=applied, state=_snapshot(controller.state))


@app.put("/servings")
async def change_servings(body: ServingsRequest, controller: RecipeSessionController = Depends(get_controller)):
    return _snapshot(controller.change_servings(body.servings))


@app.put("/ingredients")
async def set_ingredients(body: TextRequest, controller: RecipeSessionController = Depends(get_controller)):
    return _snapshot(controller.set_fresh_ingredients(body.text))


@app.put("/pantry")
async def save_pantry(body: TextRequest, controller: RecipeSessionController = Depends(get_controller)):
    return _snapshot(controller.save_pantry(body.text))


@app.put("/exclusions")
async def save_exclusions(body: TextRequest, controller: RecipeSessionController = Depends(get_controller)):
    return _snapshot(controller.save_exclusions(body.text))


@app.post("/fridge", response_model=OperationResponse)
async def analyze_fridge(body: FridgePhotoRequest, controller: RecipeSessionController = Depends(get_controller)):
    try:
        image_bytes = base64.b64decode(body.image_base64, validate=True)
    except (binascii.Error, ValueError):
        raise HTTPException(status_code=422, detail="Impossibile convertire il file in base64.")

    detected = await controller.analyze_fridge_photo(image_bytes, body.mime_type)
    return OperationResponse(applied=bool(detected), state=_snapshot(controller.state))


@app.post("/back")
async def back(controller: RecipeSessionController = Depends(get_controller)):
    return _snapshot(controller.back())


@app.post("/views/{view}")
async def show_view(
    view: Literal["input", "recipes", "favorites"],
    controller: RecipeSessionController = Depends(get_controller),
):
    if view == "input":
        state = controller.show_input()
    elif view == "recipes":
        state = controller.show_recipes()
    else:
        state = controller.show_favorites()
    return _snapshot(state)


@app.get("/share", response_class=PlainTextResponse)
async def share(controller: RecipeSessionController = Depends(get_controller)):
    try:
        return controller.share_text()
    except InputValidationError as e:
        raise HTTPException(status_code=409, detail=str(e))
