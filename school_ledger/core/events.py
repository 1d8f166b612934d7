"""
In-process domain events. Handlers run after the originating commit; a failing
handler is logged and never propagates back into the request.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Awaitable, Callable, Dict, List, Optional, Type
from uuid import UUID

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DomainEvent:
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc), kw_only=True)


@dataclass(frozen=True)
class PaymentRecorded(DomainEvent):
    student_id: str
    year_key: str
    transaction_id: UUID
    amount: Decimal
    transaction_date: date
    payment_method: Optional[str] = None
    receipt_number: Optional[str] = None
    payer_name: Optional[str] = None


EventHandler = Callable[[DomainEvent], Awaitable[None]]


class EventBus:
    def __init__(self) -> None:
        self._handlers: Dict[Type[DomainEvent], List[EventHandler]] = defaultdict(list)

    def subscribe(self, event_type: Type[DomainEvent], handler: EventHandler) -> None:
        if handler not in self._handlers[event_type]:
            self._handlers[event_type].append(handler)

    def unsubscribe(self, event_type: Type[DomainEvent], handler: EventHandler) -> None:
        if handler in self._handlers[event_type]:
            self._handlers[event_type].remove(handler)

    def clear(self) -> None:
        self._handlers.clear()

    async def publish(self, event: DomainEvent) -> None:
        for handler in list(self._handlers.get(type(event), [])):
            try:
                await handler(event)
            except Exception:
                logger.exception("Handler %s failed for %s", getattr(handler, "__name__", handler), type(event).__name__)


event_bus = EventBus()
