"""
Swipe-to-Reveal Gesture State Machine

Each station row can be dragged left to expose a delete action. The row's
behaviour is a PURE transition function:

    transition(state, event) -> (new_state, effects)

The surface feeds pointer events in and performs the returned effects
(`Select`, `Delete`). Nothing here touches the ledger.

PHASES:
- IDLE: closed, offset 0
- DRAGGING: following the pointer, offset clamped to [-reveal_width, 0]
- OPEN: snapped open, offset -reveal_width

A press that travels no more than `drag_threshold` is a TAP. Once the
threshold is crossed the gesture is a DRAG until release, even if the
pointer comes back.
"""

from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict


DEFAULT_REVEAL_WIDTH = 80.0
DEFAULT_DRAG_THRESHOLD = 5.0


class Phase(str, Enum):
    IDLE = "idle"
    DRAGGING = "dragging"
    OPEN = "open"


class RowState(BaseModel):
    """Gesture state of one row. `start_x` is None while no pointer is down."""
    model_config = ConfigDict(frozen=True)

    row_id: str
    phase: Phase = Phase.IDLE
    offset: float = 0.0
    start_x: Optional[float] = None
    start_offset: float = 0.0
    is_drag: bool = False

    @property
    def is_tracking(self) -> bool:
        return self.start_x is not None


# =============================================================================
# EVENTS
# =============================================================================

class PointerDown(BaseModel):
    model_config = ConfigDict(frozen=True)
    x: float


class PointerMove(BaseModel):
    model_config = ConfigDict(frozen=True)
    x: float


class PointerUp(BaseModel):
    model_config = ConfigDict(frozen=True)


class PointerCancel(BaseModel):
    """The pointer left the row before being released."""
    model_config = ConfigDict(frozen=True)


class DeleteActivated(BaseModel):
    """The exposed delete action was pressed."""
    model_config = ConfigDict(frozen=True)


class Reset(BaseModel):
    """The row now shows a different station; start over."""
    model_config = ConfigDict(frozen=True)
    row_id: str


GestureEvent = Union[PointerDown, PointerMove, PointerUp, PointerCancel, DeleteActivated, Reset]


# =============================================================================
# EFFECTS
# =============================================================================

class Select(BaseModel):
    model_config = ConfigDict(frozen=True)
    row_id: str


class Delete(BaseModel):
    model_config = ConfigDict(frozen=True)
    row_id: str


GestureEffect = Union[Select, Delete]


# =============================================================================
# TRANSITION
# =============================================================================

def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def _release(
    state: RowState,
    reveal_width: float,
    allow_select: bool,
) -> tuple[RowState, list[GestureEffect]]:
    if not state.is_tracking:
        return state, []

    if state.is_drag:
        if state.offset < -reveal_width / 2:
            return RowState(row_id=state.row_id, phase=Phase.OPEN, offset=-reveal_width), []
        return RowState(row_id=state.row_id), []

    # Tap: select a closed row, close an open one
    closed = RowState(row_id=state.row_id)
    if state.offset == 0:
        effects: list[GestureEffect] = [Select(row_id=state.row_id)] if allow_select else []
        return closed, effects
    return closed, []


def transition(
    state: RowState,
    event: GestureEvent,
    reveal_width: float = DEFAULT_REVEAL_WIDTH,
    drag_threshold: float = DEFAULT_DRAG_THRESHOLD,
) -> tuple[RowState, list[GestureEffect]]:
    """
    Compute the next row state and the effects to perform.

    Events that do not apply in the current state return it unchanged
    with no effects.
    """
    if isinstance(event, Reset):
        return RowState(row_id=event.row_id), []

    if isinstance(event, PointerDown):
        return state.model_copy(update={
            "start_x": event.x,
            "start_offset": state.offset,
            "is_drag": False,
        }), []

    if isinstance(event, PointerMove):
        if not state.is_tracking:
            return state, []
        dx = event.x - state.start_x
        is_drag = state.is_drag or abs(dx) > drag_threshold
        if not is_drag:
            return state, []
        return state.model_copy(update={
            "phase": Phase.DRAGGING,
            "offset": _clamp(state.start_offset + dx, -reveal_width, 0.0),
            "is_drag": True,
        }), []

    if isinstance(event, PointerUp):
        return _release(state, reveal_width, allow_select=True)

    if isinstance(event, PointerCancel):
        return _release(state, reveal_width, allow_select=False)

    if isinstance(event, DeleteActivated):
        if state.offset < 0:
            return state, [Delete(row_id=state.row_id)]
        return state, []

    raise TypeError(f"Unknown gesture event: {event!r}")


class SwipeableRow:
    """
    Stateful wrapper around `transition` for one row.

    Effects are dispatched to the callbacks; `dispatch` also returns them.
    """

    def __init__(
        self,
        row_id: str,
        on_select=None,
        on_delete=None,
        reveal_width: float = DEFAULT_REVEAL_WIDTH,
        drag_threshold: float = DEFAULT_DRAG_THRESHOLD,
    ):
        self.state = RowState(row_id=row_id)
        self._on_select = on_select
        self._on_delete = on_delete
        self._reveal_width = reveal_width
        self._drag_threshold = drag_threshold

    @property
    def row_id(self) -> str:
        return self.state.row_id

    def dispatch(self, event: GestureEvent) -> list[GestureEffect]:
        self.state, effects = transition(
            self.state,
            event,
            reveal_width=self._reveal_width,
            drag_threshold=self._drag_threshold,
        )
        for effect in effects:
            if isinstance(effect, Select) and self._on_select is not None:
                self._on_select(effect.row_id)
            elif isinstance(effect, Delete) and self._on_delete is not None:
                self._on_delete(effect.row_id)
        return effects

    def reset(self, row_id: Optional[str] = None) -> None:
        self.dispatch(Reset(row_id=row_id or self.state.row_id))
