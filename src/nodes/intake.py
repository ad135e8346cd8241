"""INTAKE: turn order items into work items.

This is the entry point for every document. It:
1. Validates the order item
2. Classifies the content type once (stored on the work item)
3. Maps the output language to a search language code
4. Normalizes the requested tone
5. Persists the work item and links it back to the order item
"""

import logging

from src.errors import WorkflowError
from src.memory.store import SourceStore
from src.state.enums import ContentKind, OrderStatus, Tone
from src.state.models import Order, OrderItem, WorkItem

logger = logging.getLogger(__name__)

MAX_SOURCE_LINKS = 4

LANGUAGE_CODES: dict[str, str] = {
    # Display names
    "polski": "pl",
    "polish": "pl",
    "angielski": "en",
    "english": "en",
    "niemiecki": "de",
    "german": "de",
    "hiszpański": "es",
    "spanish": "es",
    "ukraiński": "uk",
    "ukrainian": "uk",
    "portugalski": "pt",
    "portuguese": "pt",
    "rosyjski": "ru",
    "russian": "ru",
    "czeski": "cs",
    "czech": "cs",
    "francuski": "fr",
    "french": "fr",
    # Three-letter codes used by the order form
    "pol": "pl",
    "eng": "en",
    "ger": "de",
    "ukr": "uk",
    "fra": "fr",
    "esp": "es",
    "ros": "ru",
    "por": "pt",
    "cze": "cs",
}

DEFAULT_SEARCH_LANGUAGE = "pl"

MASTER_HINTS = ("magister", "master")
MASTER_CODES = {"mgr"}
BACHELOR_HINTS = ("licencja", "bachelor", "inżynier", "inzynier", "engineer")
BACHELOR_CODES = {"lic", "inż", "inz"}
ACADEMIC_HINTS = ("thesis", "praca", "academic", "naukow", "essay", "esej", "dyplom")
PRODUCT_HINTS = ("opis produkt", "product", "produkt")
POST_HINTS = ("social", "facebook", "linkedin", "instagram")
POST_CODES = {"post", "posty", "wpis"}
ARTICLE_HINTS = ("artyku", "article", "blog")

TONE_ALIASES: dict[str, Tone] = {
    "nieformalny": Tone.INFORMAL,
    "informal": Tone.INFORMAL,
    "casual": Tone.INFORMAL,
    "oficjalny": Tone.OFFICIAL,
    "official": Tone.OFFICIAL,
    "formal": Tone.OFFICIAL,
    "bezosobowy": Tone.IMPERSONAL,
    "impersonal": Tone.IMPERSONAL,
}


class IntakeValidationResult:
    """Result of order item validation."""

    def __init__(self):
        self.errors: list[str] = []
        self.warnings: list[str] = []
        self.is_valid: bool = True

    def add_error(self, message: str) -> None:
        self.errors.append(message)
        self.is_valid = False

    def add_warning(self, message: str) -> None:
        self.warnings.append(message)


def search_language_for(language: str | None) -> str:
    """Two-letter search language for a display name or code."""
    if not language:
        return DEFAULT_SEARCH_LANGUAGE
    key = language.strip().lower()
    if key in LANGUAGE_CODES:
        return LANGUAGE_CODES[key]
    if len(key) == 2 and key.isalpha():
        return key
    return DEFAULT_SEARCH_LANGUAGE


def classify_content_type(content_type: str) -> ContentKind:
    """
    Classify the free-text content type.

    This is the only place the content type text is interpreted; the result
    is stored on the work item and every later stage reads that.
    """
    text = (content_type or "").strip().lower()
    words = set(text.replace(".", " ").replace("-", " ").split())
    if any(hint in text for hint in MASTER_HINTS) or words & MASTER_CODES:
        return ContentKind.MASTER_THESIS
    if any(hint in text for hint in BACHELOR_HINTS) or words & BACHELOR_CODES:
        return ContentKind.BACHELOR_THESIS
    if any(hint in text for hint in PRODUCT_HINTS):
        return ContentKind.PRODUCT_DESCRIPTION
    if any(hint in text for hint in POST_HINTS) or words & POST_CODES:
        return ContentKind.SOCIAL_POST
    if any(hint in text for hint in ARTICLE_HINTS):
        return ContentKind.ARTICLE
    return ContentKind.GENERIC


def is_academic_request(content_type: str, content_kind: ContentKind) -> bool:
    """Whether searches should favor scholarly sources."""
    if content_kind.is_academic:
        return True
    text = (content_type or "").lower()
    return any(hint in text for hint in ACADEMIC_HINTS)


def normalize_tone(tone: str | None) -> Tone:
    if not tone:
        return Tone.OFFICIAL
    return TONE_ALIASES.get(tone.strip().lower(), Tone.OFFICIAL)


def validate_order_item(item: OrderItem) -> IntakeValidationResult:
    """Check an order item before a work item is created from it."""
    result = IntakeValidationResult()
    if not item.topic.strip():
        result.add_error("Topic is empty")
    if item.length <= 0:
        result.add_error("Length must be positive")
    if not item.content_type.strip():
        result.add_error("Content type is empty")
    if len(item.links) > MAX_SOURCE_LINKS:
        result.add_warning(
            f"{len(item.links)} source links given, only the first {MAX_SOURCE_LINKS} are used"
        )
    if item.tone and item.tone.strip().lower() not in TONE_ALIASES:
        result.add_warning(f"Unknown tone '{item.tone}', using official")
    return result


def build_work_item(order: Order, item: OrderItem) -> WorkItem:
    """Create (without persisting) the work item for one order item."""
    content_kind = classify_content_type(item.content_type)
    return WorkItem(
        topic=item.topic.strip(),
        target_length=item.length,
        content_type=item.content_type,
        content_kind=content_kind,
        language=item.language,
        search_language=item.search_language or search_language_for(item.language),
        tone=normalize_tone(item.tone),
        guidelines=item.guidelines,
        keywords=[k.strip() for k in item.keywords if k.strip()],
        source_links=[link for link in item.links if link][:MAX_SOURCE_LINKS],
        user_id=order.user_id,
        user_email=order.user_email,
        order_id=order.id,
        order_item_id=item.id,
    )


async def create_work_item(store: SourceStore, order_id: str, item_id: str) -> WorkItem:
    """
    Create and persist the work item for an order item.

    Idempotent: an order item that already has a work item returns it.

    Raises:
        WorkflowError: Unknown order or item, or an invalid item.
    """
    order = await store.get_order(order_id)
    if order is None:
        raise WorkflowError(f"Order {order_id} not found", stage="intake")
    item = order.item(item_id)
    if item is None:
        raise WorkflowError(f"Order item {item_id} not found in order {order_id}", stage="intake")

    if item.work_item_id:
        existing = await store.get_work_item(item.work_item_id)
        if existing is not None:
            return existing

    validation = validate_order_item(item)
    for warning in validation.warnings:
        logger.warning(f"INTAKE: order {order_id} item {item_id}: {warning}")
    if not validation.is_valid:
        raise WorkflowError(
            f"Invalid order item {item_id}: {'; '.join(validation.errors)}",
            stage="intake",
            details={"errors": validation.errors},
        )

    work_item = build_work_item(order, item)
    await store.save_work_item(work_item)

    item.work_item_id = work_item.id
    item.status = OrderStatus.IN_PROGRESS
    if order.status == OrderStatus.PENDING:
        order.status = OrderStatus.IN_PROGRESS
    await store.save_order(order)

    logger.info(
        f"INTAKE: work item {work_item.id} created for order {order_id} "
        f"item {item_id} ({work_item.content_kind.value})"
    )
    return work_item
