# Client State Package - form, step timers and notices held per session
from .form_state import RecipeForm, IngredientRow, FormValidationError, normalize_quantity
from .reassociation import (
    QuantityMatch,
    reassociate_quantities,
    build_nutrient_ingredients,
    DEFAULT_QUANTITY,
)
from .step_timer import (
    StepTimer,
    TimerBoard,
    TimerState,
    CompletionSource,
    TimerTransitionError,
    format_clock,
)
from .notifications import (
    Notifier,
    ToastQueue,
    LoggingNotifier,
    Notification,
    NotificationKind,
)

__all__ = [
    "RecipeForm",
    "IngredientRow",
    "FormValidationError",
    "normalize_quantity",
    "QuantityMatch",
    "reassociate_quantities",
    "build_nutrient_ingredients",
    "DEFAULT_QUANTITY",
    "StepTimer",
    "TimerBoard",
    "TimerState",
    "CompletionSource",
    "TimerTransitionError",
    "format_clock",
    "Notifier",
    "ToastQueue",
    "LoggingNotifier",
    "Notification",
    "NotificationKind",
]
