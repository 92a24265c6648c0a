"""
CellSync Backend — Change Notifier Unit Tests
===============================================

What we test:
    ✅ Subscribers receive each published record once, in publish order
    ✅ No replay of records published before subscribing
    ✅ Unsubscribe is idempotent and leaves other subscribers alone
    ✅ A failing handler does not block delivery to the others
    ✅ Coroutine handlers are awaited
    ✅ Records only reach subscribers of their own spreadsheet
"""

from datetime import datetime, timezone

import pytest

from cellsync.schemas.edit import EditRecordResponse
from cellsync.services.change_notifier import ChangeNotifier, SubscriptionHandle


def make_record(edit_id: int, spreadsheet_id: str = "sheet1", value: str = "v") -> EditRecordResponse:
    return EditRecordResponse(
        id=edit_id,
        spreadsheet_id=spreadsheet_id,
        user_id="u1",
        cell="A1",
        new_value=value,
        timestamp=datetime.now(timezone.utc),
    )


class TestPublishOrder:

    def setup_method(self):
        self.notifier = ChangeNotifier()

    @pytest.mark.asyncio
    async def test_delivers_each_record_in_order(self):
        received = []
        self.notifier.subscribe("sheet1", received.append)

        for edit_id in (1, 2, 3):
            delivered = await self.notifier.publish(make_record(edit_id))
            assert delivered == 1

        assert [r.id for r in received] == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_late_subscriber_gets_no_backlog(self):
        await self.notifier.publish(make_record(1))

        received = []
        self.notifier.subscribe("sheet1", received.append)
        await self.notifier.publish(make_record(2))

        assert [r.id for r in received] == [2]

    @pytest.mark.asyncio
    async def test_other_spreadsheets_are_not_notified(self):
        received = []
        self.notifier.subscribe("sheet2", received.append)

        delivered = await self.notifier.publish(make_record(1, spreadsheet_id="sheet1"))

        assert delivered == 0
        assert received == []

    @pytest.mark.asyncio
    async def test_coroutine_handler_is_awaited(self):
        received = []

        async def handler(record):
            received.append(record.id)

        self.notifier.subscribe("sheet1", handler)
        await self.notifier.publish(make_record(7))

        assert received == [7]


class TestUnsubscribe:

    def setup_method(self):
        self.notifier = ChangeNotifier()

    @pytest.mark.asyncio
    async def test_unsubscribe_twice_is_harmless(self):
        first, second = [], []
        handle = self.notifier.subscribe("sheet1", first.append)
        self.notifier.subscribe("sheet1", second.append)

        self.notifier.unsubscribe(handle)
        self.notifier.unsubscribe(handle)
        await self.notifier.publish(make_record(1))

        assert first == []
        assert [r.id for r in second] == [1]
        assert self.notifier.subscriber_count("sheet1") == 1

    def test_unknown_handle_is_ignored(self):
        self.notifier.unsubscribe(SubscriptionHandle(spreadsheet_id="nope", subscription_id=99))
        assert self.notifier.subscriber_count() == 0

    def test_subscriber_count(self):
        self.notifier.subscribe("sheet1", lambda r: None)
        self.notifier.subscribe("sheet1", lambda r: None)
        self.notifier.subscribe("sheet2", lambda r: None)

        assert self.notifier.subscriber_count("sheet1") == 2
        assert self.notifier.subscriber_count("sheet2") == 1
        assert self.notifier.subscriber_count() == 3

        self.notifier.clear()
        assert self.notifier.subscriber_count() == 0


class TestHandlerFailures:

    def setup_method(self):
        self.notifier = ChangeNotifier()

    @pytest.mark.asyncio
    async def test_failing_handler_does_not_block_others(self):
        received = []

        def broken(record):
            raise RuntimeError("subscriber went away")

        self.notifier.subscribe("sheet1", broken)
        self.notifier.subscribe("sheet1", received.append)

        delivered = await self.notifier.publish(make_record(1))

        assert delivered == 1
        assert [r.id for r in received] == [1]
