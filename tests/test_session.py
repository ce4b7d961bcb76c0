"""
Tests for the recipe session

Tests cover:
- Generate/analyze orchestration over the oracles
- Failure handling: previous state kept, error toast raised
- Input validation before any flow call
- Step timers driven through the session
- Session store lifecycle, idle expiry and eviction
- Session state under concurrent requests
"""

import threading
from unittest.mock import MagicMock

import pytest

from client.form_state import FormValidationError
from client.notifications import LoggingNotifier, NotificationKind, ToastQueue
from client.step_timer import TimerState
from config import Settings
from flows.oracle import FlowExecutionError, NutrientOracle, RecipeOracle
from flows.stub_oracle import StubNutrientOracle, StubRecipeOracle
from services.session_service import (
    RecipeSession,
    SessionNotFoundError,
    SessionStore,
    build_oracles,
)


# =============================================================================
# FIXTURES
# =============================================================================

class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def session(clock):
    """Session with chicken, broccoli and rice entered."""
    session = RecipeSession(StubRecipeOracle(), StubNutrientOracle(), clock=clock)
    session.update_form(
        lambda form: form.update_row(0, name="chicken", quantity="200", unit="g")
        .add_row("broccoli")
        .add_row("rice", "1", "cup")
    )
    return session


def kinds(session):
    return [toast.kind for toast in session.notifier.pending()]


# =============================================================================
# GENERATION TESTS
# =============================================================================

class TestGenerateRecipe:
    """Tests for recipe generation through a session."""

    def test_scenario(self, session):
        """chicken, broccoli, rice with no allergies gives a timed recipe."""
        recipe = session.generate_recipe()

        assert recipe is not None
        assert recipe.recipe_name == "Baked Chicken with Vegetables"
        assert len(recipe.alternate_recipes) == 3
        assert not recipe.allergy_warning
        assert session.timers.get(2).duration_seconds == 1500
        assert kinds(session) == [NotificationKind.SUCCESS]

    def test_empty_form_never_calls_oracle(self):
        """Should reject the request locally when no ingredient is entered."""
        oracle = MagicMock(spec=RecipeOracle)
        session = RecipeSession(oracle, MagicMock(spec=NutrientOracle))

        assert session.generate_recipe() is None
        oracle.generate_recipe.assert_not_called()
        toast = session.notifier.pending()[0]
        assert toast.kind == NotificationKind.ERROR
        assert "at least one ingredient" in toast.message

    def test_failure_keeps_previous_recipe(self, session):
        """A failed call leaves the prior recipe and analysis untouched."""
        first = session.generate_recipe()
        session.analyze_nutrients()
        previous_analysis = session.analysis
        session.notifier.drain()

        session.recipe_oracle = MagicMock(spec=RecipeOracle)
        session.recipe_oracle.generate_recipe.side_effect = FlowExecutionError("model down")

        assert session.generate_recipe() is None
        assert session.recipe is first
        assert session.analysis is previous_analysis
        toasts = session.notifier.drain()
        assert [t.kind for t in toasts] == [NotificationKind.ERROR]
        assert "Failed to generate recipe" in toasts[0].message
        assert session.busy is False

    def test_allergy_warning_toast(self, session):
        session.update_form(lambda f: f.add_row("shrimp").with_allergies("shellfish"))
        recipe = session.generate_recipe()
        assert recipe.allergy_warning
        assert kinds(session) == [NotificationKind.SUCCESS, NotificationKind.WARNING]

    def test_form_sent_to_oracle(self, session):
        oracle = MagicMock(spec=RecipeOracle)
        oracle.generate_recipe.side_effect = FlowExecutionError("x")
        session.recipe_oracle = oracle
        session.update_form(lambda f: f.with_strict_mode(True))

        session.generate_recipe()

        request = oracle.generate_recipe.call_args.args[0]
        assert request.ingredients == "200 g chicken, broccoli, 1 cup rice"
        assert request.strict_mode is True

    def test_busy_session_rejects_second_request(self, session):
        oracle = MagicMock(spec=RecipeOracle)
        session.recipe_oracle = oracle
        session.busy = True

        assert session.generate_recipe() is None
        oracle.generate_recipe.assert_not_called()
        assert kinds(session) == [NotificationKind.INFO]

    def test_new_recipe_resets_analysis(self, session):
        session.generate_recipe()
        session.set_recipe_quantity(0, "300 g")
        session.analyze_nutrients()
        session.generate_recipe()
        assert session.analysis is None
        assert session.quantity_overrides == {}

    def test_supplied_empty_queue_is_kept(self):
        """An empty queue passed in is used, not replaced by a default one."""
        queue = ToastQueue(limit=2)
        session = RecipeSession(
            MagicMock(spec=RecipeOracle), MagicMock(spec=NutrientOracle), notifier=queue,
        )

        assert session.notifier is queue
        session.generate_recipe()
        assert len(queue) == 1

    def test_busy_until_recipe_stored(self, session):
        """A second request during the call is refused; busy clears only after the recipe is stored."""
        stub = StubRecipeOracle()
        seen = {}

        def generate(request):
            seen["busy"] = session.busy
            seen["second"] = session.generate_recipe()
            return stub.generate_recipe(request)

        session.recipe_oracle = MagicMock(spec=RecipeOracle)
        session.recipe_oracle.generate_recipe.side_effect = generate

        recipe = session.generate_recipe()

        assert seen == {"busy": True, "second": None}
        assert session.recipe is recipe
        assert session.busy is False
        assert kinds(session) == [NotificationKind.INFO, NotificationKind.SUCCESS]

    def test_form_editable_during_call(self, session):
        """The session lock is not held while the model runs."""
        stub = StubRecipeOracle()

        def generate(request):
            editor = threading.Thread(
                target=session.update_form, args=(lambda f: f.with_allergies("peanuts"),),
            )
            editor.start()
            editor.join(timeout=5)
            assert not editor.is_alive()
            return stub.generate_recipe(request)

        session.recipe_oracle = MagicMock(spec=RecipeOracle)
        session.recipe_oracle.generate_recipe.side_effect = generate

        assert session.generate_recipe() is not None
        assert session.form.allergies == "peanuts"


# =============================================================================
# ANALYSIS TESTS
# =============================================================================

class TestAnalyzeNutrients:
    """Tests for nutrient analysis through a session."""

    def test_requires_recipe(self, session):
        assert session.analyze_nutrients() is None
        assert kinds(session) == [NotificationKind.ERROR]

    def test_quantities_from_form(self, session):
        session.generate_recipe()
        request = session.build_analysis_request()
        quantities = {i.name: i.quantity for i in request.ingredients}
        assert quantities["chicken"] == "200 g"
        assert quantities["broccoli"] == "1 serving"
        assert quantities["rice"] == "1 cup"
        assert quantities["olive oil"] == "1 serving"

    def test_override_quantity(self, session):
        session.generate_recipe()
        session.set_recipe_quantity(1, "150 g")
        request = session.build_analysis_request()
        assert request.ingredients[1].quantity == "150 g"

    def test_override_bad_position(self, session):
        session.generate_recipe()
        with pytest.raises(FormValidationError):
            session.set_recipe_quantity(99, "1 g")

    def test_scenario_calories_positive(self, session):
        session.generate_recipe()
        analysis = session.analyze_nutrients()
        assert analysis.recipe_analysis.total_calories > 0
        assert session.analysis is analysis

    def test_scenario_default_quantities(self):
        """Generated ingredients, each at '1 serving', give a positive calorie total."""
        session = RecipeSession(StubRecipeOracle(), StubNutrientOracle())
        session.update_form(lambda f: f.update_row(0, name="chicken").add_row("broccoli").add_row("rice"))
        recipe = session.generate_recipe()

        request = session.build_analysis_request()
        assert [i.name for i in request.ingredients] == recipe.ingredients
        assert {i.quantity for i in request.ingredients} == {"1 serving"}
        assert session.analyze_nutrients().recipe_analysis.total_calories > 0

    def test_failure_keeps_previous_analysis(self, session):
        session.generate_recipe()
        first = session.analyze_nutrients()
        session.nutrient_oracle = MagicMock(spec=NutrientOracle)
        session.nutrient_oracle.analyze_nutrients.side_effect = FlowExecutionError("x")
        session.notifier.drain()

        assert session.analyze_nutrients() is None
        assert session.analysis is first
        assert kinds(session) == [NotificationKind.ERROR]


# =============================================================================
# TIMER TESTS
# =============================================================================

class TestSessionTimers:
    """Tests for step timers driven through the session."""

    def test_requires_recipe(self, session):
        with pytest.raises(FormValidationError):
            session.start_timer(0)

    def test_timer_finished_toast(self, session, clock):
        session.generate_recipe()
        session.notifier.drain()

        session.start_timer(3)
        clock.now += 300
        finished = session.refresh_timers()

        assert [t.step_index for t in finished] == [3]
        assert session.timers.get(3).state == TimerState.COMPLETED
        toasts = session.notifier.drain()
        assert toasts[0].title == "Timer finished"

    def test_all_steps_done_toast(self, session):
        recipe = session.generate_recipe()
        session.notifier.drain()
        for index in range(len(recipe.instructions)):
            session.complete_step(index)
        toasts = session.notifier.drain()
        assert toasts[-1].kind == NotificationKind.SUCCESS
        assert "All steps done" in toasts[-1].message


# =============================================================================
# STORE TESTS
# =============================================================================

class TestSessionStore:
    """Tests for in-memory session storage."""

    @pytest.fixture
    def store(self):
        return SessionStore(
            StubRecipeOracle(), StubNutrientOracle(),
            settings=Settings(toast_limit=2, default_quantity="100 g"),
        )

    def test_create_get_delete(self, store):
        session = store.create()
        assert store.get(session.session_id) is session
        assert len(store) == 1
        store.delete(session.session_id)
        assert len(store) == 0
        with pytest.raises(SessionNotFoundError):
            store.get(session.session_id)

    def test_settings_applied(self, store):
        session = store.create()
        assert session.default_quantity == "100 g"
        for _ in range(3):
            session.notifier.notify(NotificationKind.INFO, "hello")
        assert len(session.notifier) == 2

    def test_unknown_delete(self, store):
        with pytest.raises(SessionNotFoundError):
            store.delete("missing")

    def test_idle_session_expires(self, clock):
        store = SessionStore(
            StubRecipeOracle(), StubNutrientOracle(),
            settings=Settings(session_ttl_seconds=60), clock=clock,
        )
        session = store.create()
        clock.now += 61

        with pytest.raises(SessionNotFoundError):
            store.get(session.session_id)
        assert len(store) == 0

    def test_access_keeps_session_alive(self, clock):
        store = SessionStore(
            StubRecipeOracle(), StubNutrientOracle(),
            settings=Settings(session_ttl_seconds=60), clock=clock,
        )
        session = store.create()
        clock.now += 50
        store.get(session.session_id)
        clock.now += 50

        assert store.get(session.session_id) is session
        assert session.last_access == 100

    def test_full_store_evicts_least_recently_used(self, clock):
        store = SessionStore(
            StubRecipeOracle(), StubNutrientOracle(),
            settings=Settings(max_sessions=2), clock=clock,
        )
        first = store.create()
        clock.now += 1
        second = store.create()
        clock.now += 1
        store.get(first.session_id)
        clock.now += 1

        third = store.create()

        assert len(store) == 2
        with pytest.raises(SessionNotFoundError):
            store.get(second.session_id)
        assert store.get(first.session_id) is first
        assert store.get(third.session_id) is third

    def test_purge_expired(self, clock):
        store = SessionStore(
            StubRecipeOracle(), StubNutrientOracle(),
            settings=Settings(session_ttl_seconds=60), clock=clock,
        )
        store.create()
        store.create()
        clock.now += 30
        assert store.purge_expired() == 0
        clock.now += 31
        assert store.purge_expired() == 2
        assert len(store) == 0

    def test_build_stub_oracles(self):
        recipe_oracle, nutrient_oracle = build_oracles(Settings(oracle_backend="stub"))
        assert isinstance(recipe_oracle, StubRecipeOracle)
        assert isinstance(nutrient_oracle, StubNutrientOracle)


class TestNotifiers:
    def test_toast_limit_validated(self):
        with pytest.raises(ValueError):
            ToastQueue(limit=0)

    def test_drain_clears(self):
        queue = ToastQueue()
        queue.notify(NotificationKind.WARNING, "careful", "Allergy warning")
        toasts = queue.drain()
        assert toasts[0].to_dict()["kind"] == "warning"
        assert len(queue) == 0

    def test_logging_notifier(self, caplog):
        with caplog.at_level("WARNING", logger="Notifications"):
            LoggingNotifier().notify(NotificationKind.WARNING, "careful")
        assert "careful" in caplog.text
