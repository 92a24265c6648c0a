"""
CellSync Backend — Edit Log Service Tests
===========================================

What:  Append and history behaviour against a real SQLite database.
How:   Uses the db_session fixture (fresh schema per test) and a private
       ChangeNotifier per test class.

What we test:
    ✅ Two writes to one cell are both kept, newest first
    ✅ History is complete and ordered by (timestamp, id) descending
    ✅ Blank fields raise ValidationError and store nothing
    ✅ limit / before paging without gaps or overlap
    ✅ Unknown `before` raises NotFoundError
    ✅ Concurrent appends from two sessions both land with unique ids
    ✅ Subscribers see committed records; store failures publish nothing
"""

import asyncio

import pytest
from sqlalchemy.exc import OperationalError

from cellsync.config import settings
from cellsync.database import async_session_factory
from cellsync.exceptions import NotFoundError, StoreUnavailable, ValidationError
from cellsync.services.change_notifier import ChangeNotifier
from cellsync.services.edit_log_service import EditLogService


class TestAppend:

    def setup_method(self):
        self.notifier = ChangeNotifier()
        self.service = EditLogService(notifier=self.notifier)

    @pytest.mark.asyncio
    async def test_same_cell_twice_keeps_both_newest_first(self, db_session):
        await self.service.append(db_session, "sheet1", "u1", "A1", "hello")
        await self.service.append(db_session, "sheet1", "u1", "A1", "world")

        history = await self.service.history(db_session, "sheet1")

        assert [(r.cell, r.new_value) for r in history] == [("A1", "world"), ("A1", "hello")]

    @pytest.mark.asyncio
    async def test_append_returns_store_assigned_fields(self, db_session):
        record = await self.service.append(db_session, "sheet1", "u1", "B2", "42")

        assert record.id >= 1
        assert record.timestamp is not None
        assert record.spreadsheet_id == "sheet1"
        assert record.user_id == "u1"
        assert record.cell == "B2"
        assert record.new_value == "42"

    @pytest.mark.asyncio
    async def test_whitespace_value_is_accepted(self, db_session):
        record = await self.service.append(db_session, "sheet1", "u1", "A1", " ")
        assert record.new_value == " "

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "user_id, cell, new_value, field",
        [
            ("", "A1", "x", "userId"),
            ("u1", "", "x", "cell"),
            ("u1", "A1", "", "newValue"),
            ("   ", "A1", "x", "userId"),
        ],
    )
    async def test_blank_field_stores_nothing(self, db_session, user_id, cell, new_value, field):
        await self.service.append(db_session, "sheet1", "u1", "A1", "before")

        with pytest.raises(ValidationError) as exc_info:
            await self.service.append(db_session, "sheet1", user_id, cell, new_value)

        assert exc_info.value.field == field
        history = await self.service.history(db_session, "sheet1")
        assert len(history) == 1

    @pytest.mark.asyncio
    async def test_history_contains_every_append_in_order(self, db_session):
        appended = []
        for i in range(12):
            record = await self.service.append(db_session, "sheet1", "u1", f"A{i + 1}", str(i))
            appended.append(record.id)
        await self.service.append(db_session, "sheet2", "u1", "A1", "elsewhere")

        history = await self.service.history(db_session, "sheet1")

        assert {r.id for r in history} == set(appended)
        assert len(history) == len(appended)
        keys = [(r.timestamp, r.id) for r in history]
        assert keys == sorted(keys, reverse=True)
        assert len(set(keys)) == len(keys)

    @pytest.mark.asyncio
    async def test_concurrent_appends_from_two_callers(self):
        async with async_session_factory() as first, async_session_factory() as second:
            a, b = await asyncio.gather(
                self.service.append(first, "sheet1", "alice", "A1", "from alice"),
                self.service.append(second, "sheet1", "bob", "A1", "from bob"),
            )

        assert a.id != b.id
        async with async_session_factory() as session:
            history = await self.service.history(session, "sheet1")
        assert {r.id for r in history} == {a.id, b.id}


class TestAppendNotification:

    def setup_method(self):
        self.notifier = ChangeNotifier()
        self.service = EditLogService(notifier=self.notifier)

    @pytest.mark.asyncio
    async def test_subscriber_receives_committed_record(self, db_session):
        received = []
        self.notifier.subscribe("sheet1", received.append)

        first = await self.service.append(db_session, "sheet1", "u1", "A1", "1")
        second = await self.service.append(db_session, "sheet1", "u1", "A1", "2")

        assert received == [first, second]

    @pytest.mark.asyncio
    async def test_validation_failure_publishes_nothing(self, db_session):
        received = []
        self.notifier.subscribe("sheet1", received.append)

        with pytest.raises(ValidationError):
            await self.service.append(db_session, "sheet1", "u1", "", "x")

        assert received == []

    @pytest.mark.asyncio
    async def test_store_failure_raises_and_publishes_nothing(self, mock_db_session):
        received = []
        self.notifier.subscribe("sheet1", received.append)
        mock_db_session.flush.side_effect = OperationalError(
            "INSERT INTO realtime_edits", {}, Exception("connection refused")
        )

        with pytest.raises(StoreUnavailable) as exc_info:
            await self.service.append(mock_db_session, "sheet1", "u1", "A1", "x")

        assert exc_info.value.operation == "append_edit"
        mock_db_session.commit.assert_not_awaited()
        assert received == []


class TestHistoryPaging:

    def setup_method(self):
        self.service = EditLogService(notifier=ChangeNotifier())

    async def _seed(self, db, count: int):
        return [
            (await self.service.append(db, "sheet1", "u1", "A1", str(i))).id
            for i in range(count)
        ]

    @pytest.mark.asyncio
    async def test_pages_do_not_overlap_or_skip(self, db_session):
        ids = await self._seed(db_session, 5)
        newest_first = list(reversed(ids))

        page1 = await self.service.history(db_session, "sheet1", limit=2)
        page2 = await self.service.history(db_session, "sheet1", limit=2, before=page1[-1].id)
        page3 = await self.service.history(db_session, "sheet1", limit=2, before=page2[-1].id)

        assert [r.id for r in page1] == newest_first[0:2]
        assert [r.id for r in page2] == newest_first[2:4]
        assert [r.id for r in page3] == newest_first[4:5]

    @pytest.mark.asyncio
    async def test_omitted_limit_uses_default_page_size(self, db_session, monkeypatch):
        monkeypatch.setattr(settings, "history_default_limit", 3)
        ids = await self._seed(db_session, 5)

        page = await self.service.history(db_session, "sheet1")

        assert [r.id for r in page] == list(reversed(ids))[:3]

    @pytest.mark.asyncio
    async def test_default_page_size_never_exceeds_maximum(self, db_session, monkeypatch):
        monkeypatch.setattr(settings, "history_default_limit", 10)
        monkeypatch.setattr(settings, "history_max_limit", 2)
        await self._seed(db_session, 4)

        page = await self.service.history(db_session, "sheet1")

        assert len(page) == 2

    @pytest.mark.asyncio
    async def test_before_without_limit_returns_the_rest(self, db_session):
        ids = await self._seed(db_session, 4)

        older = await self.service.history(db_session, "sheet1", before=ids[2])

        assert [r.id for r in older] == [ids[1], ids[0]]

    @pytest.mark.asyncio
    async def test_unknown_before_raises_not_found(self, db_session):
        await self._seed(db_session, 1)

        with pytest.raises(NotFoundError):
            await self.service.history(db_session, "sheet1", before=999_999)

    @pytest.mark.asyncio
    async def test_before_from_another_spreadsheet_raises_not_found(self, db_session):
        other = await self.service.append(db_session, "sheet2", "u1", "A1", "x")

        with pytest.raises(NotFoundError):
            await self.service.history(db_session, "sheet1", before=other.id)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("limit", [0, -1, settings.history_max_limit + 1])
    async def test_limit_out_of_range(self, db_session, limit):
        with pytest.raises(ValidationError) as exc_info:
            await self.service.history(db_session, "sheet1", limit=limit)
        assert exc_info.value.field == "limit"

    @pytest.mark.asyncio
    async def test_empty_spreadsheet_has_empty_history(self, db_session):
        assert await self.service.history(db_session, "never-edited") == []
