"""Tests for order synchronisation and the SYNC ORDER stage."""

import pytest

from src.errors import WritingError
from src.nodes.delivery import DeliveryStage
from src.orders.sync import OrderNotifier, OrderSynchronizer, StoreOrderRepository
from src.state.enums import OrderStatus, StageStatus, WorkItemStatus
from src.state.models import GeneratedContent, Order, OrderItem


class RecordingNotifier(OrderNotifier):
    def __init__(self):
        self.completed = []

    async def order_completed(self, order):
        self.completed.append(order.id)


class BrokenSynchronizer(OrderSynchronizer):
    async def sync_with_order(self, item, content):
        raise ConnectionError("order service unavailable")


def two_item_order() -> Order:
    return Order(
        order_number="ZAM-7",
        items=[
            OrderItem(id="i1", topic="a", length=1000, content_type="artykuł"),
            OrderItem(id="i2", topic="b", length=1000, content_type="artykuł"),
        ],
    )


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def synchronizer(store, notifier):
    return OrderSynchronizer(StoreOrderRepository(store), notifier)


class TestOrderSynchronizer:
    """Tests for writing completed work back to the order."""

    @pytest.mark.asyncio
    async def test_item_completed_order_still_open(self, store, make_work_item, synchronizer, notifier):
        order = await store.save_order(two_item_order())
        item = make_work_item(order_id=order.id, order_item_id="i1")

        synced = await synchronizer.sync_with_order(item, "<p>Done</p>")

        assert synced.item("i1").status == OrderStatus.COMPLETED
        assert synced.item("i1").content == "<p>Done</p>"
        assert synced.item("i1").work_item_id == item.id
        assert synced.status != OrderStatus.COMPLETED
        assert notifier.completed == []

    @pytest.mark.asyncio
    async def test_last_item_completes_order_once(self, store, make_work_item, synchronizer, notifier):
        order = await store.save_order(two_item_order())
        for item_id in ("i1", "i2"):
            await synchronizer.sync_with_order(
                make_work_item(order_id=order.id, order_item_id=item_id), "<p>x</p>"
            )
        await synchronizer.sync_with_order(
            make_work_item(order_id=order.id, order_item_id="i2"), "<p>again</p>"
        )

        saved = await store.get_order(order.id)
        assert saved.status == OrderStatus.COMPLETED
        assert saved.completed_at is not None
        assert notifier.completed == [order.id]

    @pytest.mark.asyncio
    async def test_item_without_order(self, make_work_item, synchronizer):
        assert await synchronizer.sync_with_order(make_work_item(), "x") is None

    @pytest.mark.asyncio
    async def test_missing_order(self, make_work_item, synchronizer):
        item = make_work_item(order_id="gone", order_item_id="i1")
        assert await synchronizer.sync_with_order(item, "x") is None

    @pytest.mark.asyncio
    async def test_missing_order_item(self, store, make_work_item, synchronizer):
        order = await store.save_order(two_item_order())
        item = make_work_item(order_id=order.id, order_item_id="i9")

        assert await synchronizer.sync_with_order(item, "x") is None
        saved = await store.get_order(order.id)
        assert all(i.status == OrderStatus.PENDING for i in saved.items)


class TestDeliveryStage:
    """Tests for completing a work item."""

    async def _ready_item(self, store, make_work_item, **overrides):
        item = make_work_item(status=WorkItemStatus.CONTENT_GENERATION, **overrides)
        await store.save_work_item(item)
        await store.save_generated_content(
            GeneratedContent(
                work_item_id=item.id, full_content="<p>Text</p>", status=StageStatus.COMPLETED
            )
        )
        return item

    @pytest.mark.asyncio
    async def test_completes_and_marks_delivered(self, store, make_work_item, synchronizer):
        order = await store.save_order(two_item_order())
        item = await self._ready_item(store, make_work_item, order_id=order.id, order_item_id="i1")
        stage = DeliveryStage(store, synchronizer)

        await stage.run(item)

        assert (await store.require_work_item(item.id)).status == WorkItemStatus.COMPLETED
        content = await store.get_generated_content(item.id)
        assert content.delivered
        assert content.delivered_at is not None
        assert (await store.get_order(order.id)).item("i1").content == "<p>Text</p>"
        assert await stage.is_complete(await store.require_work_item(item.id))

    @pytest.mark.asyncio
    async def test_unknown_order_item_not_delivered(self, store, make_work_item, synchronizer):
        order = await store.save_order(two_item_order())
        item = await self._ready_item(store, make_work_item, order_id=order.id, order_item_id="i9")

        await DeliveryStage(store, synchronizer).run(item)

        assert (await store.require_work_item(item.id)).status == WorkItemStatus.COMPLETED
        content = await store.get_generated_content(item.id)
        assert not content.delivered
        assert content.delivered_at is None

    @pytest.mark.asyncio
    async def test_sync_failure_still_completes(self, store, make_work_item, caplog):
        item = await self._ready_item(store, make_work_item, order_id="o1", order_item_id="i1")
        stage = DeliveryStage(store, BrokenSynchronizer(StoreOrderRepository(store)))

        await stage.run(item)

        assert (await store.require_work_item(item.id)).status == WorkItemStatus.COMPLETED
        assert not (await store.get_generated_content(item.id)).delivered
        assert "order service unavailable" in caplog.text

    @pytest.mark.asyncio
    async def test_nothing_to_deliver(self, store, make_work_item):
        item = make_work_item(status=WorkItemStatus.CONTENT_GENERATION)
        with pytest.raises(WritingError):
            await DeliveryStage(store).run(item)
