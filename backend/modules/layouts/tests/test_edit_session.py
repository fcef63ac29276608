# backend/modules/layouts/tests/test_edit_session.py

"""
Tests for optimistic drag editing
"""

import asyncio
import pytest
import pytest_asyncio
from unittest.mock import AsyncMock

from core.exceptions import EditSessionError, NotFoundError
from ..services.edit_session import CommitOutcome, EditState, OptimisticEditSession
from ..services.geometry import Position, Size, snap_to_cells
from ..services.floor_plan_service import floor_plan_service
from ..services.layout_service import layout_service


class TestOptimisticEditSession:
    """Test drag lifecycle, debounce and rollback"""

    @pytest.fixture
    def commit(self):
        return AsyncMock(return_value=None)

    @pytest.fixture
    def session(self, commit):
        session = OptimisticEditSession(commit, Size(400, 400), debounce_ms=10)
        session.track_item("t1", Position(10, 20), Size(80, 80))
        session.track_item("t2", Position(200, 200), Size(80, 80))
        return session

    @pytest.mark.asyncio
    async def test_drag_is_clamped_and_committed(self, session, commit):
        session.begin("t1", pointer_offset=Position(0, 0))
        shown = session.move(Position(500, 500))
        dropped = session.end()

        assert shown == Position(320, 320)
        assert dropped == Position(320, 320)
        assert session.item_state("t1") == EditState.COMMITTING

        outcome = await session.settle("t1")

        commit.assert_awaited_once_with("t1", {"x": 320, "y": 320})
        assert outcome == CommitOutcome("t1", True, Position(320, 320))
        assert session.committed_position("t1") == Position(320, 320)
        assert session.item_state("t1") == EditState.IDLE

    @pytest.mark.asyncio
    async def test_pointer_offset_is_subtracted(self, session):
        session.begin("t1", pointer_offset=Position(30, 40))

        assert session.move(Position(130, 140)) == Position(100, 100)

    @pytest.mark.asyncio
    async def test_failed_commit_rolls_back_to_committed_position(self, session, commit):
        error = RuntimeError("store unavailable")
        commit.side_effect = error
        seen = []

        def listener(outcome):
            seen.append((outcome, session.item_state("t1")))

        session.subscribe(listener)

        session.begin("t1")
        for point in (Position(50, 60), Position(390, 10), Position(150, 150)):
            session.move(point)
        session.end()
        outcome = await session.settle("t1")

        assert outcome.success is False
        assert outcome.error is error
        assert outcome.position == Position(10, 20)
        assert session.position("t1") == Position(10, 20)
        assert session.committed_position("t1") == Position(10, 20)
        assert seen == [(outcome, EditState.ROLLED_BACK)]
        assert session.item_state("t1") == EditState.IDLE

    @pytest.mark.asyncio
    async def test_async_listener_is_awaited(self, session, commit):
        received = []

        async def listener(outcome):
            await asyncio.sleep(0)
            received.append(outcome.item_id)

        session.subscribe(listener)
        session.begin("t2")
        session.move(Position(0, 0))
        session.end()
        await session.settle("t2")

        assert received == ["t2"]

    @pytest.mark.asyncio
    async def test_failing_listener_does_not_break_session(self, session, commit):
        session.subscribe(AsyncMock(side_effect=ValueError("toast failed")))
        session.begin("t1")
        session.move(Position(100, 100))
        session.end()

        outcome = await session.settle("t1")

        assert outcome.success is True

    @pytest.mark.asyncio
    async def test_new_drag_supersedes_pending_commit(self, session, commit):
        session.begin("t1")
        session.move(Position(100, 100))
        session.end()

        # debounce has not fired yet
        session.begin("t1")
        session.move(Position(200, 150))
        session.end()
        await session.settle("t1")

        commit.assert_awaited_once_with("t1", {"x": 200, "y": 150})

    @pytest.mark.asyncio
    async def test_in_flight_commit_is_not_cancelled(self, commit):
        release = asyncio.Event()
        started = asyncio.Event()

        async def slow_commit(item_id, patch):
            started.set()
            await release.wait()

        session = OptimisticEditSession(slow_commit, Size(400, 400), debounce_ms=0)
        session.track_item("t1", Position(0, 0), Size(80, 80))

        session.begin("t1")
        session.move(Position(100, 100))
        session.end()
        await started.wait()

        session.begin("t1")
        session.move(Position(50, 50))
        release.set()
        await asyncio.sleep(0.01)

        assert session.committed_position("t1") == Position(100, 100)
        assert session.position("t1") == Position(50, 50)
        assert session.item_state("t1") == EditState.DRAGGING

    @pytest.mark.asyncio
    async def test_failure_during_newer_drag_keeps_live_position(self):
        release = asyncio.Event()
        started = asyncio.Event()

        async def failing_commit(item_id, patch):
            started.set()
            await release.wait()
            raise RuntimeError("rejected")

        session = OptimisticEditSession(failing_commit, Size(400, 400), debounce_ms=0)
        session.track_item("t1", Position(0, 0), Size(80, 80))

        session.begin("t1")
        session.move(Position(100, 100))
        session.end()
        await started.wait()

        session.begin("t1")
        session.move(Position(60, 60))
        release.set()
        await asyncio.sleep(0.01)

        assert session.position("t1") == Position(60, 60)
        assert session.committed_position("t1") == Position(0, 0)
        assert session.item_state("t1") == EditState.DRAGGING

    @pytest.mark.asyncio
    async def test_close_drops_pending_commit(self, session, commit):
        session.begin("t1")
        session.move(Position(100, 100))
        session.end()

        await session.close()
        await asyncio.sleep(0.03)

        commit.assert_not_awaited()
        assert await session.settle("t1") is None

    @pytest.mark.asyncio
    async def test_closed_session_rejects_drags(self, session):
        await session.close()

        with pytest.raises(EditSessionError):
            session.begin("t1")

    @pytest.mark.asyncio
    async def test_second_drag_while_dragging_rejected(self, session):
        session.begin("t1")

        with pytest.raises(EditSessionError):
            session.begin("t2")

    def test_move_without_drag_rejected(self, session):
        with pytest.raises(EditSessionError):
            session.move(Position(1, 1))

        with pytest.raises(EditSessionError):
            session.end()

    def test_unknown_item_rejected(self, session):
        with pytest.raises(EditSessionError):
            session.begin("nope")

    @pytest.mark.asyncio
    async def test_unsubscribe(self, session):
        listener = AsyncMock()
        unsubscribe = session.subscribe(listener)
        unsubscribe()

        session.begin("t1")
        session.end()
        await session.settle("t1")

        listener.assert_not_called()

    def test_track_reads_dicts_and_objects(self, commit):
        class Row:
            id = "r1"
            x = 5
            y = 6
            width = 10
            height = 20

        session = OptimisticEditSession(
            commit,
            Size(100, 100),
            items=[{"id": "d1", "x": 1, "y": 2, "width": 3, "height": 4}, Row()],
        )

        assert session.position("d1") == Position(1, 2)
        assert session.position("r1") == Position(5, 6)

    @pytest.mark.asyncio
    async def test_superseded_commit_leaves_no_outcome(self, session):
        session.begin("t1")
        session.move(Position(100, 100))
        session.end()
        assert (await session.settle("t1")).success is True

        session.begin("t1")
        session.move(Position(150, 150))
        session.end()
        session.begin("t1")

        assert await session.settle("t1") is None

    @pytest.mark.asyncio
    async def test_commits_are_written_one_at_a_time(self):
        running = []
        overlaps = []

        async def commit(item_id, patch):
            running.append(item_id)
            overlaps.append(len(running))
            await asyncio.sleep(0.01)
            running.remove(item_id)

        session = OptimisticEditSession(commit, Size(400, 400), debounce_ms=0)
        session.track_item("t1", Position(0, 0), Size(80, 80))
        session.track_item("t2", Position(200, 200), Size(80, 80))

        session.begin("t1")
        session.move(Position(100, 100))
        session.end()
        session.begin("t2")
        session.move(Position(250, 250))
        session.end()
        first, second = await asyncio.gather(session.settle("t1"), session.settle("t2"))

        assert first.success is True
        assert second.success is True
        assert overlaps == [1, 1]
        assert session.committed_position("t1") == Position(100, 100)
        assert session.committed_position("t2") == Position(250, 250)

    @pytest.mark.asyncio
    async def test_newer_drop_stays_committed_after_slow_commit(self):
        release = asyncio.Event()
        started = asyncio.Event()
        written = []

        async def commit(item_id, patch):
            if not written:
                started.set()
                await release.wait()
            written.append((patch["x"], patch["y"]))

        session = OptimisticEditSession(commit, Size(400, 400), debounce_ms=0)
        session.track_item("t1", Position(0, 0), Size(80, 80))

        session.begin("t1")
        session.move(Position(100, 100))
        session.end()
        await started.wait()

        session.begin("t1")
        session.move(Position(50, 50))
        session.end()
        release.set()
        outcome = await session.settle("t1")

        assert outcome.success is True
        assert written == [(100, 100), (50, 50)]
        assert session.committed_position("t1") == Position(50, 50)
        assert session.position("t1") == Position(50, 50)

    @pytest.mark.asyncio
    async def test_snap_rounds_dragged_position(self, commit):
        session = OptimisticEditSession(
            commit, Size(4, 4), debounce_ms=0, snap=snap_to_cells
        )
        session.track_item("a", Position(0, 0), Size(1, 1))

        session.begin("a", pointer_offset=Position(0.4, 0.4))
        assert session.move(Position(2, 2)) == Position(2, 2)
        session.end()
        await session.settle("a")

        commit.assert_awaited_once_with("a", {"x": 2, "y": 2})
        assert session.committed_position("a") == Position(2, 2)


class TestFloorPlanEditSession:
    """Test dragging tables against the database"""

    @pytest.mark.asyncio
    async def test_drag_commits_table_position(self, db_session, sample_room, sample_tables):
        session = await floor_plan_service.open_edit_session(
            db_session, sample_room.id, canvas_size=Size(400, 400), debounce_ms=0
        )
        table = sample_tables[0]

        session.begin(table.id, pointer_offset=Position(0, 0))
        session.move(Position(500, 500))
        session.end()
        outcome = await session.settle(table.id)

        assert outcome.success is True
        stored = await floor_plan_service.get_table(db_session, table.id)
        assert (stored.x, stored.y) == (320, 320)

    @pytest.mark.asyncio
    async def test_default_canvas_comes_from_room_bounds(
        self, db_session, sample_room, sample_tables
    ):
        session = await floor_plan_service.open_edit_session(db_session, sample_room.id)

        assert session.canvas_size == Size(350, 150)

    @pytest.mark.asyncio
    async def test_back_to_back_drops_both_persist(
        self, db_session, sample_room, sample_tables
    ):
        session = await floor_plan_service.open_edit_session(
            db_session, sample_room.id, canvas_size=Size(400, 400), debounce_ms=0
        )
        first, second = sample_tables

        session.begin(first.id)
        session.move(Position(100, 100))
        session.end()
        session.begin(second.id)
        session.move(Position(250, 250))
        session.end()
        outcomes = await asyncio.gather(
            session.settle(first.id), session.settle(second.id)
        )

        assert [outcome.success for outcome in outcomes] == [True, True]
        stored_first = await floor_plan_service.get_table(db_session, first.id)
        stored_second = await floor_plan_service.get_table(db_session, second.id)
        assert (stored_first.x, stored_first.y) == (100, 100)
        assert (stored_second.x, stored_second.y) == (250, 250)


class TestGridLayoutEditSession:
    """Test dragging grid items against the database"""

    @pytest_asyncio.fixture
    async def layout(self, repository):
        return await repository.create(
            {
                "name": "Main",
                "scope_till_id": 1,
                "columns": 4,
                "items": [
                    {"id": "a", "x": 0, "y": 0, "width": 1, "height": 1},
                    {"id": "b", "x": 1, "y": 0, "width": 1, "height": 1},
                ],
            }
        )

    @staticmethod
    async def stored_positions(db_session, layout_id):
        stored = await layout_service.get_layout(db_session, layout_id)
        return {item["id"]: (item["x"], item["y"]) for item in stored.items}

    @pytest.mark.asyncio
    async def test_drag_snaps_to_whole_cells(self, db_session, layout):
        session = await layout_service.open_edit_session(db_session, layout.id, debounce_ms=0)

        assert session.canvas_size == Size(4, 4)

        session.begin("a", pointer_offset=Position(0.4, 0.4))
        shown = session.move(Position(2, 2))
        session.end()
        outcome = await session.settle("a")

        assert shown == Position(2, 2)
        assert outcome.success is True
        assert session.committed_position("a") == Position(2, 2)
        assert (await self.stored_positions(db_session, layout.id))["a"] == (2, 2)

    @pytest.mark.asyncio
    async def test_back_to_back_drops_both_persist(self, db_session, layout):
        session = await layout_service.open_edit_session(db_session, layout.id, debounce_ms=0)

        session.begin("a")
        session.move(Position(3, 3))
        session.end()
        session.begin("b")
        session.move(Position(0, 2))
        session.end()
        outcomes = await asyncio.gather(session.settle("a"), session.settle("b"))

        assert [outcome.success for outcome in outcomes] == [True, True]
        assert await self.stored_positions(db_session, layout.id) == {
            "a": (3, 3),
            "b": (0, 2),
        }

    @pytest.mark.asyncio
    async def test_unknown_layout_raises(self, db_session):
        with pytest.raises(NotFoundError):
            await layout_service.open_edit_session(db_session, 999)
