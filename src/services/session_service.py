"""
Recipe Session Service

Holds the state of one browser session (form, generated recipe,
nutrient analysis, step timers, pending toasts) and drives the two
flows from it.

Failure policy:
- Input problems are reported before any flow call is made
- A failed flow call is logged and surfaced as an error toast;
  the previous recipe/analysis stays as it was
- One attempt per user action, no retries
"""

import logging
import threading
import time
import uuid
from typing import Callable, Dict, List, Optional, Tuple

from client.form_state import FormValidationError, RecipeForm
from client.notifications import NotificationKind, Notifier, ToastQueue
from client.reassociation import (
    QuantityMatch,
    build_nutrient_ingredients,
    reassociate_quantities,
)
from client.step_timer import StepTimer, TimerBoard
from config import Settings, get_settings
from flows.analyze_nutrient_content import AnalyzeNutrientContentFlow
from flows.generate_recipe import GenerateRecipeFlow
from flows.oracle import FlowError, NutrientOracle, RecipeOracle
from flows.stub_oracle import StubNutrientOracle, StubRecipeOracle
from models.nutrition import AnalyzeNutrientContentInput, AnalyzeNutrientContentOutput
from models.recipe import GenerateRecipeOutput
from services.llm_service import get_llm_service


logger = logging.getLogger("RecipeSession")


class SessionNotFoundError(KeyError):
    """Raised when a session id is unknown."""


class RecipeSession:
    """
    One user's in-memory recipe workspace.

    Usage:
        session = RecipeSession(recipe_oracle, nutrient_oracle)
        session.update_form(lambda f: f.update_row(0, name="chicken"))
        recipe = session.generate_recipe()     # None on failure (see toasts)
        analysis = session.analyze_nutrients()
    """

    def __init__(
        self,
        recipe_oracle: RecipeOracle,
        nutrient_oracle: NutrientOracle,
        notifier: Optional[Notifier] = None,
        session_id: Optional[str] = None,
        default_quantity: str = "1 serving",
        calorie_target: float = 2000,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.session_id = session_id or str(uuid.uuid4())
        self.recipe_oracle = recipe_oracle
        self.nutrient_oracle = nutrient_oracle
        # An empty ToastQueue is falsy, so test against None
        self.notifier: Notifier = notifier if notifier is not None else ToastQueue()
        self.default_quantity = default_quantity
        self.calorie_target = calorie_target
        self.clock = clock
        self.last_access = clock()

        self.form = RecipeForm.new()
        self.recipe: Optional[GenerateRecipeOutput] = None
        self.analysis: Optional[AnalyzeNutrientContentOutput] = None
        self.quantity_overrides: Dict[int, str] = {}
        self.timers = TimerBoard(clock=clock)

        # Guards every read-modify-write of session state; never held
        # across an oracle call
        self.lock = threading.RLock()
        self.busy = False

    def touch(self) -> None:
        self.last_access = self.clock()

    # ------------------------------------------------------------------
    # Form
    # ------------------------------------------------------------------

    def update_form(self, edit: Callable[[RecipeForm], RecipeForm]) -> RecipeForm:
        """
        Apply one form edit; the form is replaced, never mutated.

        Raises:
            FormValidationError: if the edit is invalid (e.g. bad position)
        """
        with self.lock:
            self.form = edit(self.form)
            return self.form

    def set_recipe_quantity(self, position: int, quantity: str) -> None:
        """Quantity typed next to a generated ingredient on the recipe card."""
        with self.lock:
            if self.recipe is None:
                raise FormValidationError("Generate a recipe first.")
            if not 0 <= position < len(self.recipe.ingredients):
                raise FormValidationError(f"No recipe ingredient at position {position}")

            quantity = (quantity or "").strip()
            if quantity:
                self.quantity_overrides[position] = quantity
            else:
                self.quantity_overrides.pop(position, None)

    def quantity_matches(self) -> List[QuantityMatch]:
        with self.lock:
            if self.recipe is None:
                return []
            return reassociate_quantities(
                self.recipe.ingredients,
                self.form.rows,
                self.quantity_overrides,
                self.default_quantity,
            )

    # ------------------------------------------------------------------
    # Flows
    # ------------------------------------------------------------------

    def _notify(self, kind: NotificationKind, message: str, title: Optional[str] = None):
        self.notifier.notify(kind, message, title)

    def _begin(self) -> bool:
        with self.lock:
            if self.busy:
                return False
            self.busy = True
            return True

    def _end(self) -> None:
        with self.lock:
            self.busy = False

    def generate_recipe(self) -> Optional[GenerateRecipeOutput]:
        """
        Send the form to the recipe flow.

        Returns:
            The new recipe, or None if the request was rejected or failed
            (a toast explains why)
        """
        with self.lock:
            try:
                request = self.form.to_recipe_request()
            except FormValidationError as e:
                self._notify(NotificationKind.ERROR, str(e), "Missing ingredients")
                return None

        if not self._begin():
            self._notify(NotificationKind.INFO, "A request is already in progress.")
            return None

        try:
            try:
                recipe = self.recipe_oracle.generate_recipe(request)
            except FlowError as e:
                logger.exception("Recipe generation failed for session %s", self.session_id)
                self._notify(
                    NotificationKind.ERROR,
                    f"Failed to generate recipe. Please try again. ({e})",
                    "Error",
                )
                return None

            with self.lock:
                self.recipe = recipe
                self.analysis = None
                self.quantity_overrides = {}
                self.timers = TimerBoard.for_steps(recipe.instructions, clock=self.clock)
        finally:
            self._end()

        logger.info(
            "Generated recipe with %d ingredients and %d steps",
            len(recipe.ingredients), len(recipe.instructions),
        )
        self._notify(NotificationKind.SUCCESS, f"{recipe.recipe_name} is ready.", "Recipe generated")
        if recipe.allergy_warning:
            self._notify(NotificationKind.WARNING, recipe.allergy_warning, "Allergy warning")
        return recipe

    def build_analysis_request(self) -> AnalyzeNutrientContentInput:
        with self.lock:
            if self.recipe is None:
                raise FormValidationError("Generate a recipe first.")
            return AnalyzeNutrientContentInput(
                recipe_name=self.recipe.recipe_name,
                ingredients=build_nutrient_ingredients(self.quantity_matches()),
            )

    def analyze_nutrients(self) -> Optional[AnalyzeNutrientContentOutput]:
        """
        Send the current recipe's ingredients, with quantities, to the nutrient flow.

        Returns:
            The analysis, or None if there is no recipe or the call failed
        """
        try:
            request = self.build_analysis_request()
        except FormValidationError as e:
            self._notify(NotificationKind.ERROR, str(e), "No recipe")
            return None

        if not self._begin():
            self._notify(NotificationKind.INFO, "A request is already in progress.")
            return None

        try:
            try:
                analysis = self.nutrient_oracle.analyze_nutrients(request)
            except FlowError as e:
                logger.exception("Nutrient analysis failed for session %s", self.session_id)
                self._notify(
                    NotificationKind.ERROR,
                    f"Failed to analyze nutrients. Please try again. ({e})",
                    "Error",
                )
                return None

            with self.lock:
                self.analysis = analysis
        finally:
            self._end()

        logger.info("Analyzed %d ingredients", len(analysis.ingredient_analyses))
        self._notify(NotificationKind.SUCCESS, "Nutrient analysis complete.", "Analysis ready")
        return analysis

    # ------------------------------------------------------------------
    # Step timers
    # ------------------------------------------------------------------

    def refresh_timers(self) -> List[StepTimer]:
        with self.lock:
            finished = self.timers.refresh()
        for timer in finished:
            self._notify(
                NotificationKind.INFO,
                f"Step {timer.step_index + 1} timer finished.",
                "Timer finished",
            )
        return finished

    def _step_action(self, index: int, action: str) -> StepTimer:
        with self.lock:
            if self.recipe is None:
                raise FormValidationError("Generate a recipe first.")
            self.refresh_timers()
            return getattr(self.timers, action)(index)

    def start_timer(self, index: int) -> StepTimer:
        return self._step_action(index, "start")

    def pause_timer(self, index: int) -> StepTimer:
        return self._step_action(index, "pause")

    def complete_step(self, index: int) -> StepTimer:
        with self.lock:
            timer = self._step_action(index, "complete")
            done = self.timers.all_completed
        if done:
            self._notify(NotificationKind.SUCCESS, "All steps done. Enjoy your meal!")
        return timer


def build_oracles(
    settings: Optional[Settings] = None,
) -> Tuple[RecipeOracle, NutrientOracle]:
    """Pick live or stub oracles according to ORACLE_BACKEND."""
    settings = settings or get_settings()
    if settings.oracle_backend == "stub":
        return StubRecipeOracle(), StubNutrientOracle()
    llm = get_llm_service()
    return GenerateRecipeFlow(llm), AnalyzeNutrientContentFlow(llm)


class SessionStore:
    """
    In-memory sessions keyed by id. Nothing is persisted.

    Sessions idle for longer than SESSION_TTL_SECONDS are dropped, and
    creating a session beyond MAX_SESSIONS evicts the least recently
    used one.
    """

    def __init__(
        self,
        recipe_oracle: RecipeOracle,
        nutrient_oracle: NutrientOracle,
        settings: Optional[Settings] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.recipe_oracle = recipe_oracle
        self.nutrient_oracle = nutrient_oracle
        self.settings = settings or get_settings()
        self.clock = clock
        self._sessions: Dict[str, RecipeSession] = {}
        self._lock = threading.Lock()

    def _is_expired(self, session: RecipeSession, now: float) -> bool:
        return now - session.last_access > self.settings.session_ttl_seconds

    def _purge_expired(self, now: float) -> int:
        # Caller holds self._lock
        expired = [
            session_id for session_id, session in self._sessions.items()
            if self._is_expired(session, now)
        ]
        for session_id in expired:
            del self._sessions[session_id]
        if expired:
            logger.info("Evicted %d idle session(s)", len(expired))
        return len(expired)

    def purge_expired(self) -> int:
        with self._lock:
            return self._purge_expired(self.clock())

    def create(self) -> RecipeSession:
        session = RecipeSession(
            self.recipe_oracle,
            self.nutrient_oracle,
            notifier=ToastQueue(self.settings.toast_limit),
            default_quantity=self.settings.default_quantity,
            calorie_target=self.settings.daily_calorie_target,
            clock=self.clock,
        )
        with self._lock:
            self._purge_expired(session.last_access)
            while self._sessions and len(self._sessions) >= self.settings.max_sessions:
                oldest = min(self._sessions.values(), key=lambda s: s.last_access)
                del self._sessions[oldest.session_id]
                logger.info("Evicted session %s (store full)", oldest.session_id)
            self._sessions[session.session_id] = session
        logger.info("Created session %s", session.session_id)
        return session

    def get(self, session_id: str) -> RecipeSession:
        with self._lock:
            session = self._sessions.get(session_id)
            if session is not None and self._is_expired(session, self.clock()):
                del self._sessions[session_id]
                logger.info("Session %s expired", session_id)
                session = None
            if session is not None:
                session.touch()
        if session is None:
            raise SessionNotFoundError(session_id)
        session.refresh_timers()
        return session

    def delete(self, session_id: str) -> None:
        with self._lock:
            if self._sessions.pop(session_id, None) is None:
                raise SessionNotFoundError(session_id)

    def __len__(self) -> int:
        return len(self._sessions)


# Global singleton instance
_session_store: Optional[SessionStore] = None


def get_session_store() -> SessionStore:
    """Get or create the global session store."""
    global _session_store
    if _session_store is None:
        recipe_oracle, nutrient_oracle = build_oracles()
        _session_store = SessionStore(recipe_oracle, nutrient_oracle)
    return _session_store
