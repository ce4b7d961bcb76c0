"""
FastAPI Application for Recipe Studio

Provides REST API endpoints for:
- Recipe generation and nutrient analysis flows (direct calls)
- Browser sessions: ingredient form, generated recipe, step timers
- Toast notifications raised by the session
"""

# Load environment variables FIRST (before other imports that may need them)
from dotenv import load_dotenv
load_dotenv()

import logging
import os
import sys
from datetime import datetime
from typing import Dict, Optional

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, field_validator

# Add src to path
sys.path.insert(0, os.path.dirname(__file__))

from config import get_settings
from client.form_state import FormValidationError, normalize_quantity
from client.notifications import ToastQueue
from client.step_timer import TimerTransitionError
from flows.oracle import FlowError, FlowInputError
from models.nutrition import AnalyzeNutrientContentInput, AnalyzeNutrientContentOutput
from models.recipe import GenerateRecipeInput, GenerateRecipeOutput
from presentation.recipe_view import session_view
from services.llm_service import get_llm_service
from services.session_service import (
    RecipeSession,
    SessionNotFoundError,
    SessionStore,
    get_session_store,
)


settings = get_settings()

logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger("RecipeStudio")


# =============================================================================
# APP SETUP
# =============================================================================

app = FastAPI(
    title="Recipe Studio API",
    description="Recipes from what is in your fridge, with nutrient analysis",
    version="1.0.0",
)

# CORS for frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Reject invalid input with 400, before any flow is called."""
    return JSONResponse(status_code=400, content={"detail": jsonable_encoder(exc.errors())})


# =============================================================================
# REQUEST MODELS
# =============================================================================

class IngredientRowRequest(BaseModel):
    name: str = ""
    quantity: str = ""
    unit: str = ""

    @field_validator("quantity", mode="before")
    @classmethod
    def _quantity_text(cls, v):
        return normalize_quantity(v)


class IngredientRowUpdate(BaseModel):
    name: Optional[str] = None
    quantity: Optional[str] = None
    unit: Optional[str] = None

    @field_validator("quantity", mode="before")
    @classmethod
    def _quantity_text(cls, v):
        # None means "leave unchanged"
        return None if v is None else normalize_quantity(v)


class PreferenceRequest(BaseModel):
    nutrient: str
    value: float = Field(..., description="Slider position, clamped to 0-100")


class OptionsRequest(BaseModel):
    allergies: Optional[str] = None
    strict_mode: Optional[bool] = Field(None, alias="strictMode")

    model_config = {"populate_by_name": True}


class QuantityRequest(BaseModel):
    quantity: str = ""

    @field_validator("quantity", mode="before")
    @classmethod
    def _quantity_text(cls, v):
        return normalize_quantity(v)


# =============================================================================
# DEPENDENCIES
# =============================================================================

def get_store() -> SessionStore:
    return get_session_store()


def get_session(session_id: str, store: SessionStore = Depends(get_store)) -> RecipeSession:
    """Dependency resolving a session id, 404 when unknown."""
    try:
        return store.get(session_id)
    except SessionNotFoundError:
        raise HTTPException(status_code=404, detail="Session not found")


def _form_edit(session: RecipeSession, edit) -> dict:
    try:
        session.update_form(edit)
    except FormValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return session_view(session)


def _step_edit(session: RecipeSession, action, index: int) -> dict:
    try:
        action(index)
    except FormValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except IndexError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except TimerTransitionError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return session_view(session)


# =============================================================================
# ROUTES: HEALTH
# =============================================================================

@app.get("/health")
def health_check():
    """Health check endpoint for container orchestration."""
    model_status = "stub"
    if settings.oracle_backend == "ollama":
        model_status = "ok" if get_llm_service().check_connection() else "unavailable"

    return {
        "status": "healthy",
        "version": app.version,
        "environment": settings.environment,
        "services": {
            "oracle_backend": settings.oracle_backend,
            "model": model_status,
        },
        "timestamp": datetime.now().isoformat(),
    }


# =============================================================================
# ROUTES: FLOWS
# =============================================================================

@app.post("/api/flows/generate-recipe", response_model=GenerateRecipeOutput)
def generate_recipe_flow(request: GenerateRecipeInput, store: SessionStore = Depends(get_store)):
    """Run the recipe generation flow once."""
    try:
        return store.recipe_oracle.generate_recipe(request)
    except FlowInputError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except FlowError as e:
        logger.exception("generate-recipe flow failed")
        raise HTTPException(status_code=502, detail=f"Recipe generation failed: {e}")


@app.post("/api/flows/analyze-nutrient-content", response_model=AnalyzeNutrientContentOutput)
def analyze_nutrient_content_flow(
    request: AnalyzeNutrientContentInput, store: SessionStore = Depends(get_store)
):
    """Run the nutrient analysis flow once."""
    try:
        return store.nutrient_oracle.analyze_nutrients(request)
    except FlowInputError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except FlowError as e:
        logger.exception("analyze-nutrient-content flow failed")
        raise HTTPException(status_code=502, detail=f"Nutrient analysis failed: {e}")


# =============================================================================
# ROUTES: SESSIONS
# =============================================================================

@app.post("/api/sessions", status_code=201)
def create_session(store: SessionStore = Depends(get_store)):
    return session_view(store.create())


@app.get("/api/sessions/{session_id}")
def get_session_state(session: RecipeSession = Depends(get_session)):
    return session_view(session)


@app.delete("/api/sessions/{session_id}", status_code=204)
def delete_session(session_id: str, store: SessionStore = Depends(get_store)):
    try:
        store.delete(session_id)
    except SessionNotFoundError:
        raise HTTPException(status_code=404, detail="Session not found")


# =============================================================================
# ROUTES: INGREDIENT FORM
# =============================================================================

@app.post("/api/sessions/{session_id}/ingredients")
def add_ingredient(
    request: Optional[IngredientRowRequest] = None,
    session: RecipeSession = Depends(get_session),
):
    """Append an ingredient row (blank unless fields are given)."""
    row = request or IngredientRowRequest()
    return _form_edit(session, lambda form: form.add_row(row.name, row.quantity, row.unit))


@app.patch("/api/sessions/{session_id}/ingredients/{index}")
def update_ingredient(
    index: int,
    request: IngredientRowUpdate,
    session: RecipeSession = Depends(get_session),
):
    return _form_edit(
        session,
        lambda form: form.update_row(index, request.name, request.quantity, request.unit),
    )


@app.delete("/api/sessions/{session_id}/ingredients/{index}")
def remove_ingredient(index: int, session: RecipeSession = Depends(get_session)):
    return _form_edit(session, lambda form: form.remove_row(index))


@app.put("/api/sessions/{session_id}/preferences/{index}")
def set_preference(
    index: int,
    request: PreferenceRequest,
    session: RecipeSession = Depends(get_session),
):
    """Move one nutrient-preference slider on an ingredient row."""
    return _form_edit(
        session, lambda form: form.set_preference(index, request.nutrient, request.value)
    )


@app.put("/api/sessions/{session_id}/options")
def set_options(request: OptionsRequest, session: RecipeSession = Depends(get_session)):
    """Set allergies and/or strict mode."""
    def edit(form):
        if request.allergies is not None:
            form = form.with_allergies(request.allergies)
        if request.strict_mode is not None:
            form = form.with_strict_mode(request.strict_mode)
        return form

    return _form_edit(session, edit)


# =============================================================================
# ROUTES: GENERATE / ANALYZE
# =============================================================================

@app.post("/api/sessions/{session_id}/generate")
def generate_for_session(session: RecipeSession = Depends(get_session)):
    """
    Generate a recipe from the session's form.

    Failures do not change the session; they show up as toasts.
    """
    session.generate_recipe()
    return session_view(session)


@app.post("/api/sessions/{session_id}/analyze")
def analyze_for_session(session: RecipeSession = Depends(get_session)):
    """Analyze the current recipe's nutrients."""
    session.analyze_nutrients()
    return session_view(session)


@app.put("/api/sessions/{session_id}/recipe/quantities/{position}")
def set_recipe_quantity(
    position: int,
    request: QuantityRequest,
    session: RecipeSession = Depends(get_session),
):
    """Quantity typed next to a generated ingredient."""
    try:
        session.set_recipe_quantity(position, request.quantity)
    except FormValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return session_view(session)


# =============================================================================
# ROUTES: STEP TIMERS
# =============================================================================

@app.post("/api/sessions/{session_id}/steps/{index}/start")
def start_step_timer(index: int, session: RecipeSession = Depends(get_session)):
    return _step_edit(session, session.start_timer, index)


@app.post("/api/sessions/{session_id}/steps/{index}/pause")
def pause_step_timer(index: int, session: RecipeSession = Depends(get_session)):
    return _step_edit(session, session.pause_timer, index)


@app.post("/api/sessions/{session_id}/steps/{index}/complete")
def complete_step(index: int, session: RecipeSession = Depends(get_session)):
    """Check a step off; its timer controls are disabled from then on."""
    return _step_edit(session, session.complete_step, index)


# =============================================================================
# ROUTES: NOTIFICATIONS
# =============================================================================

@app.get("/api/sessions/{session_id}/notifications")
def drain_notifications(session: RecipeSession = Depends(get_session)) -> Dict[str, list]:
    """Return pending toasts and clear them."""
    notifier = session.notifier
    if not isinstance(notifier, ToastQueue):
        raise HTTPException(status_code=404, detail="Session has no notification queue")
    return {"notifications": [toast.to_dict() for toast in notifier.drain()]}


# =============================================================================
# RUN
# =============================================================================

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
