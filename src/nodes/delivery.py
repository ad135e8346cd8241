"""SYNC ORDER node: mark the work item completed and hand the document to its order.

Order synchronisation failures are logged; the work item is completed
regardless, since the document itself is already persisted.
"""

import logging
from datetime import datetime, timezone

from src.errors import WritingError, log_error_with_context
from src.memory.store import SourceStore
from src.orders.sync import OrderSynchronizer
from src.state.enums import WorkItemStatus
from src.state.machine import transition
from src.state.models import AcademicWork, WorkItem

logger = logging.getLogger(__name__)


class DeliveryStage:
    """Completion of a work item plus order synchronisation."""

    name = "sync_order"

    def __init__(self, store: SourceStore, synchronizer: OrderSynchronizer | None = None):
        self.store = store
        self.synchronizer = synchronizer

    async def is_complete(self, item: WorkItem) -> bool:
        return item.status == WorkItemStatus.COMPLETED

    async def final_document(self, item: WorkItem) -> str:
        """
        The finished document of a work item.

        Raises:
            WritingError: Nothing finished is stored for the item.
        """
        if item.is_academic:
            work = await self.store.get_outline(item.id)
            if isinstance(work, AcademicWork) and work.is_completed:
                return work.final_document
        else:
            content = await self.store.get_generated_content(item.id)
            if content is not None and content.is_completed:
                return content.full_content
        raise WritingError("No finished document to deliver", section=self.name)

    async def run(self, item: WorkItem) -> WorkItem:
        document = await self.final_document(item)

        synced = False
        if self.synchronizer is not None:
            try:
                synced = await self.synchronizer.sync_with_order(item, document) is not None
            except Exception as e:
                log_error_with_context(
                    e,
                    stage=self.name,
                    context={"work_item_id": item.id, "order_id": item.order_id},
                    level=logging.WARNING,
                )

        if synced and not item.is_academic:
            content = await self.store.get_generated_content(item.id)
            content.delivered = True
            content.delivered_at = datetime.now(timezone.utc)
            await self.store.save_generated_content(content)

        transition(item, WorkItemStatus.COMPLETED)
        await self.store.save_work_item(item)
        logger.info(f"SYNC: work item {item.id} completed (order synced: {synced})")
        return item
