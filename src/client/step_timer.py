"""
Step Timer State Machine

One countdown per instruction step, with a completion checkbox.

States:
    IDLE      not started, remaining = full duration
    RUNNING   counting down once per second
    PAUSED    holding remaining, resumable
    COMPLETED terminal; reached by checking the step off, or by a
              running countdown reaching zero

Timers are independent. There is no shared clock and no pause-all.
"""

import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from models.recipe import RecipeStep


class TimerState(Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    COMPLETED = "completed"


class CompletionSource(Enum):
    CHECKBOX = "checkbox"
    TIMER = "timer"


class TimerTransitionError(Exception):
    """Raised when a timer control is used in a state that does not allow it."""


def format_clock(seconds: int) -> str:
    """125 -> '02:05', 3725 -> '1:02:05'"""
    seconds = max(0, int(seconds))
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes:02d}:{secs:02d}"


@dataclass
class StepTimer:
    """
    Countdown and checkbox for one instruction step.

    A step whose timer text could not be parsed has duration None: it can
    still be checked off, but start/pause are not available.
    """
    step_index: int
    step_text: str
    duration_seconds: Optional[int] = None
    remaining_seconds: int = 0
    state: TimerState = TimerState.IDLE
    completed_by: Optional[CompletionSource] = None

    def __post_init__(self):
        if self.duration_seconds is not None and self.remaining_seconds == 0 \
                and self.state == TimerState.IDLE:
            self.remaining_seconds = self.duration_seconds

    @classmethod
    def for_step(cls, index: int, step: RecipeStep) -> "StepTimer":
        return cls(
            step_index=index,
            step_text=step.step,
            duration_seconds=step.duration_seconds,
        )

    @property
    def has_timer(self) -> bool:
        return self.duration_seconds is not None

    @property
    def is_completed(self) -> bool:
        return self.state == TimerState.COMPLETED

    @property
    def controls_enabled(self) -> bool:
        """Start/pause buttons are shown only for live timers."""
        return self.has_timer and not self.is_completed

    def start(self) -> None:
        if not self.has_timer:
            raise TimerTransitionError(f"Step {self.step_index + 1} has no timer")
        if self.is_completed:
            raise TimerTransitionError(f"Step {self.step_index + 1} is already completed")
        self.state = TimerState.RUNNING

    def pause(self) -> None:
        if not self.has_timer:
            raise TimerTransitionError(f"Step {self.step_index + 1} has no timer")
        if self.state == TimerState.PAUSED:
            return
        if self.state != TimerState.RUNNING:
            raise TimerTransitionError(
                f"Cannot pause step {self.step_index + 1} while {self.state.value}"
            )
        self.state = TimerState.PAUSED

    def complete(self) -> None:
        """Check the step off. Further elapsed time is ignored."""
        if self.is_completed:
            return
        self.state = TimerState.COMPLETED
        self.completed_by = CompletionSource.CHECKBOX

    def tick(self, seconds: int = 1) -> bool:
        """
        Advance a running countdown.

        Returns:
            True if this tick finished the countdown
        """
        if self.state != TimerState.RUNNING or seconds <= 0:
            return False

        self.remaining_seconds = max(0, self.remaining_seconds - seconds)
        if self.remaining_seconds == 0:
            self.state = TimerState.COMPLETED
            self.completed_by = CompletionSource.TIMER
            return True
        return False

    def to_dict(self) -> dict:
        return {
            "step_index": self.step_index,
            "has_timer": self.has_timer,
            "duration_seconds": self.duration_seconds,
            "remaining_seconds": self.remaining_seconds,
            "display": format_clock(self.remaining_seconds) if self.has_timer else None,
            "state": self.state.value,
            "completed": self.is_completed,
            "completed_by": self.completed_by.value if self.completed_by else None,
            "controls_enabled": self.controls_enabled,
        }


@dataclass
class TimerBoard:
    """
    All step timers of one recipe, advanced lazily from a clock.

    Each running timer remembers when it was last advanced; refresh()
    converts the whole seconds elapsed since then into ticks. Fractional
    seconds carry over to the next refresh.
    """
    timers: List[StepTimer] = field(default_factory=list)
    clock: Callable[[], float] = time.monotonic
    _anchors: Dict[int, float] = field(default_factory=dict, repr=False)
    _lock: Any = field(default_factory=threading.RLock, repr=False, compare=False)

    @classmethod
    def for_steps(
        cls,
        steps: List[RecipeStep],
        clock: Callable[[], float] = time.monotonic,
    ) -> "TimerBoard":
        return cls(
            timers=[StepTimer.for_step(i, step) for i, step in enumerate(steps)],
            clock=clock,
        )

    def get(self, index: int) -> StepTimer:
        if not 0 <= index < len(self.timers):
            raise IndexError(f"No step at position {index}")
        return self.timers[index]

    def refresh(self) -> List[StepTimer]:
        """
        Advance all running timers to now.

        Safe to call from several threads: each elapsed second is
        applied once.

        Returns:
            Timers whose countdown finished during this refresh
        """
        with self._lock:
            now = self.clock()
            finished = []
            for timer in self.timers:
                anchor = self._anchors.get(timer.step_index)
                if timer.state != TimerState.RUNNING or anchor is None:
                    continue
                elapsed = int(now - anchor)
                if elapsed <= 0:
                    continue
                self._anchors[timer.step_index] = anchor + elapsed
                if timer.tick(elapsed):
                    finished.append(timer)
                    self._anchors.pop(timer.step_index, None)
            return finished

    def start(self, index: int) -> StepTimer:
        with self._lock:
            timer = self.get(index)
            self.refresh()
            was_running = timer.state == TimerState.RUNNING
            timer.start()
            if not was_running:
                self._anchors[index] = self.clock()
            return timer

    def pause(self, index: int) -> StepTimer:
        with self._lock:
            timer = self.get(index)
            self.refresh()
            timer.pause()
            self._anchors.pop(index, None)
            return timer

    def complete(self, index: int) -> StepTimer:
        with self._lock:
            timer = self.get(index)
            self.refresh()
            timer.complete()
            self._anchors.pop(index, None)
            return timer

    @property
    def all_completed(self) -> bool:
        return bool(self.timers) and all(t.is_completed for t in self.timers)

    def to_list(self) -> List[dict]:
        with self._lock:
            return [timer.to_dict() for timer in self.timers]
