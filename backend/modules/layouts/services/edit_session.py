# backend/modules/layouts/services/edit_session.py

"""
Optimistic drag editing of positioned items.

The dragged item follows the pointer immediately, clamped to the canvas.
On release the position is committed after a short debounce; a new drag
of the same item before the debounce fires supersedes the pending write.
A failed write restores the last position the store accepted and tells
the subscribers, so the UI can show a toast. Commits of one session are
written one at a time, in drop order.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Set
import asyncio
import inspect
import logging

from core.config import settings
from core.exceptions import EditSessionError

from .geometry import Position, Size, clamp_position

logger = logging.getLogger(__name__)

CommitFn = Callable[[Any, Dict[str, float]], Awaitable[Any]]
SnapFn = Callable[[Position], Position]


class EditState(str, Enum):
    IDLE = "idle"
    DRAGGING = "dragging"
    COMMITTING = "committing"
    ROLLED_BACK = "rolled_back"


@dataclass
class CommitOutcome:
    """Result of one debounced commit"""

    item_id: Any
    success: bool
    position: Position  # position shown after the outcome
    error: Optional[BaseException] = None


Listener = Callable[[CommitOutcome], Any]


@dataclass
class _TrackedItem:
    size: Size
    committed: Position  # last position the store accepted
    live: Position
    state: EditState = EditState.IDLE
    pointer_offset: Position = field(default_factory=lambda: Position(0, 0))
    timer: Optional[asyncio.Task] = None
    fired: bool = False
    drops: int = 0  # end() calls so far
    committed_drop: int = 0  # drop number behind `committed`
    last_outcome: Optional[CommitOutcome] = None


class OptimisticEditSession:
    """Drag session over the items of one canvas (a grid layout or a room)"""

    def __init__(
        self,
        commit: CommitFn,
        canvas_size: Size,
        items: Iterable[Any] = (),
        debounce_ms: Optional[int] = None,
        snap: Optional[SnapFn] = None,
    ):
        self._commit = commit
        self.canvas_size = canvas_size
        self._snap = snap
        self.debounce_ms = (
            settings.drag_commit_debounce_ms if debounce_ms is None else debounce_ms
        )
        self._items: Dict[Any, _TrackedItem] = {}
        self._listeners: List[Listener] = []
        self._tasks: Set[asyncio.Task] = set()
        # Commits share one store session, so they run one at a time
        self._commit_lock = asyncio.Lock()
        self._active: Optional[Any] = None
        self._closed = False

        for item in items:
            self.track(item)

    # Items

    def track(self, item: Any) -> None:
        """Register an item (dict, schema or ORM row) at its stored position"""
        get = item.get if isinstance(item, dict) else lambda name: getattr(item, name)
        self.track_item(
            get("id"),
            Position(get("x"), get("y")),
            Size(get("width"), get("height")),
        )

    def track_item(self, item_id: Any, position: Position, size: Size) -> None:
        self._items[item_id] = _TrackedItem(size=size, committed=position, live=position)

    def position(self, item_id: Any) -> Position:
        """Position currently shown for an item"""
        return self._item(item_id).live

    def committed_position(self, item_id: Any) -> Position:
        return self._item(item_id).committed

    def item_state(self, item_id: Any) -> EditState:
        return self._item(item_id).state

    @property
    def dragging(self) -> Optional[Any]:
        return self._active

    # Subscribers

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Receive every CommitOutcome; returns a callable that unsubscribes"""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # Drag lifecycle

    def begin(self, item_id: Any, pointer_offset: Position = Position(0, 0)) -> Position:
        """Start dragging an item; the pointer offset is relative to its origin"""
        self._ensure_open()
        if self._active is not None:
            raise EditSessionError(f"Item {self._active} is already being dragged")

        item = self._item(item_id)
        if item.timer is not None and not item.fired:
            item.timer.cancel()
            item.timer = None
            item.last_outcome = None
            logger.debug(f"Pending commit for item {item_id} superseded by a new drag")

        item.pointer_offset = pointer_offset
        item.state = EditState.DRAGGING
        self._active = item_id
        return item.live

    def move(self, pointer: Position) -> Position:
        """Follow the pointer; the item stays entirely on the canvas"""
        self._ensure_open()
        item = self._dragged()
        candidate = pointer.offset_by(item.pointer_offset)
        position = clamp_position(candidate, item.size, self.canvas_size)
        if self._snap is not None:
            position = self._snap(position)
        item.live = position
        return item.live

    def end(self) -> Position:
        """Drop the item and schedule the debounced commit of its position"""
        self._ensure_open()
        item = self._dragged()
        item_id = self._active
        self._active = None

        item.state = EditState.COMMITTING
        item.fired = False
        item.drops += 1
        task = asyncio.get_running_loop().create_task(
            self._debounced_commit(item_id, item.live, item.drops)
        )
        item.timer = task
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return item.live

    async def settle(self, item_id: Any) -> Optional[CommitOutcome]:
        """Wait for the latest commit of an item; None if it was cancelled"""
        item = self._item(item_id)
        task = item.timer
        if task is None:
            return item.last_outcome
        try:
            return await task
        except asyncio.CancelledError:
            if task.cancelled():
                return None
            raise

    async def close(self) -> None:
        """Tear down: drop pending commits; writes already sent may finish"""
        self._closed = True
        self._active = None
        self._listeners.clear()

        cancelled = []
        for item in self._items.values():
            if item.timer is not None and not item.fired:
                item.timer.cancel()
                cancelled.append(item.timer)
                item.timer = None
            if item.timer is None or item.state == EditState.DRAGGING:
                item.state = EditState.IDLE

        if cancelled:
            await asyncio.gather(*cancelled, return_exceptions=True)
            logger.debug(f"Edit session closed, {len(cancelled)} pending commit(s) dropped")

    # Internals

    async def _debounced_commit(
        self, item_id: Any, position: Position, drop: int
    ) -> CommitOutcome:
        item = self._items[item_id]
        await asyncio.sleep(self.debounce_ms / 1000)

        item.fired = True
        current = asyncio.current_task()
        try:
            async with self._commit_lock:
                await self._commit(item_id, {"x": position.x, "y": position.y})
        except Exception as e:
            logger.warning(
                f"Commit of item {item_id} to ({position.x}, {position.y}) failed: {e}"
            )
            # Only the latest drop of an idle item snaps back
            if item.timer is current and item.state == EditState.COMMITTING:
                item.live = item.committed
                item.state = EditState.ROLLED_BACK
            outcome = CommitOutcome(item_id, False, item.live, e)
        else:
            # An older drop finishing late must not replace a newer accepted one
            if drop > item.committed_drop:
                item.committed = position
                item.committed_drop = drop
            if item.timer is current and item.state == EditState.COMMITTING:
                item.state = EditState.IDLE
            outcome = CommitOutcome(item_id, True, item.live)

        item.last_outcome = outcome
        await self._emit(outcome)

        if item.state == EditState.ROLLED_BACK:
            item.state = EditState.IDLE
        if item.timer is current:
            item.timer = None
        return outcome

    async def _emit(self, outcome: CommitOutcome) -> None:
        for listener in list(self._listeners):
            try:
                result = listener(outcome)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception(f"Edit session listener failed for item {outcome.item_id}")

    def _item(self, item_id: Any) -> _TrackedItem:
        try:
            return self._items[item_id]
        except KeyError:
            raise EditSessionError(f"Item {item_id} is not part of this edit session")

    def _dragged(self) -> _TrackedItem:
        if self._active is None:
            raise EditSessionError("No drag in progress")
        return self._items[self._active]

    def _ensure_open(self) -> None:
        if self._closed:
            raise EditSessionError("Edit session is closed")
