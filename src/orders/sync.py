"""Order synchronisation after a work item completes.

The order aggregate lives outside the pipeline. Completion writes the
generated content back onto the order item, closes the order once every
item is done and notifies the customer through an ``OrderNotifier``.
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone

from src.memory.store import SourceStore
from src.state.enums import OrderStatus
from src.state.models import Order, WorkItem

logger = logging.getLogger(__name__)


class OrderRepository(ABC):
    """Access to the external order aggregate."""

    @abstractmethod
    async def get_order(self, order_id: str) -> Order | None:
        """Load an order, or None when it does not exist."""

    @abstractmethod
    async def save_order(self, order: Order) -> Order:
        """Persist an order."""


class StoreOrderRepository(OrderRepository):
    """Orders kept in the source store's ``orders`` namespace."""

    def __init__(self, store: SourceStore):
        self.store = store

    async def get_order(self, order_id: str) -> Order | None:
        return await self.store.get_order(order_id)

    async def save_order(self, order: Order) -> Order:
        return await self.store.save_order(order)


class OrderNotifier(ABC):
    """Customer notification when an order is complete."""

    @abstractmethod
    async def order_completed(self, order: Order) -> None:
        """Called once, when the last item of an order completes."""


class LoggingNotifier(OrderNotifier):
    """Notifier that only logs; outbound email is handled elsewhere."""

    async def order_completed(self, order: Order) -> None:
        logger.info(
            f"ORDER: order {order.order_number or order.id} completed, "
            f"notifying {order.user_email or 'customer'}"
        )


class OrderSynchronizer:
    """Write completed work back onto its order."""

    def __init__(
        self,
        repository: OrderRepository,
        notifier: OrderNotifier | None = None,
    ):
        self.repository = repository
        self.notifier = notifier or LoggingNotifier()

    async def sync_with_order(self, item: WorkItem, content: str) -> Order | None:
        """
        Mark the order item completed with its content.

        Args:
            item: Completed work item.
            content: Final generated document.

        Returns:
            The updated order, or None when nothing was written back.
        """
        if not item.order_id:
            return None

        order = await self.repository.get_order(item.order_id)
        if order is None:
            logger.warning(f"ORDER: order {item.order_id} of work item {item.id} not found")
            return None

        order_item = order.item(item.order_item_id) if item.order_item_id else None
        if order_item is None:
            logger.warning(
                f"ORDER: item {item.order_item_id} not found in order {order.id}"
            )
            return None

        order_item.status = OrderStatus.COMPLETED
        order_item.content = content
        order_item.work_item_id = item.id
        logger.info(f"ORDER: item {order_item.id} of order {order.id} completed")

        newly_completed = order.all_items_completed and order.status != OrderStatus.COMPLETED
        if newly_completed:
            order.status = OrderStatus.COMPLETED
            order.completed_at = datetime.now(timezone.utc)
        await self.repository.save_order(order)

        if newly_completed:
            await self.notifier.order_completed(order)
        return order
