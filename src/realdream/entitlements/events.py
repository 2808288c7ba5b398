import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple, Type, TypeVar

from .state import EntitlementState, Rejection

logger = logging.getLogger(__name__)

T = TypeVar("T")


class EventBus:
    """Simple thread-safe in-process event bus.

    Subscribers are keyed by event class; events are emitted by instance.
    Delivery is synchronous on the emitting thread. A failing handler is logged
    and does not stop delivery to the others.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._subscribers: Dict[Type[Any], List[Callable[[Any], None]]] = {}

    def subscribe(self, event_type: Type[T], handler: Callable[[T], None]) -> None:
        with self._lock:
            self._subscribers.setdefault(event_type, []).append(handler)  # type: ignore[arg-type]

    def unsubscribe(self, event_type: Type[T], handler: Callable[[T], None]) -> None:
        with self._lock:
            handlers = self._subscribers.get(event_type, [])
            if handler in handlers:
                handlers.remove(handler)
                if not handlers:
                    self._subscribers.pop(event_type, None)

    def emit(self, event: Any) -> None:
        with self._lock:
            targets = [
                h
                for event_type, handlers in self._subscribers.items()
                if isinstance(event, event_type)
                for h in handlers
            ]
        for h in targets:
            try:
                h(event)
            except Exception:
                logger.exception("Event handler %r failed for %s", h, type(event).__name__)


@dataclass(frozen=True)
class StateChanged:
    old: EntitlementState
    new: EntitlementState
    reason: str  # "hydrate", "select", "purchase", "adjust", "set_balance"


@dataclass(frozen=True)
class PurchaseCompleted:
    item_id: str
    cost: int
    remaining_balance: int


@dataclass(frozen=True)
class PurchaseRejected:
    item_id: str
    reason: Rejection
    balance: int


@dataclass(frozen=True)
class StorageFailed:
    operation: str  # "read" | "decode" | "write"
    key: str
    error: str
    skipped_keys: Tuple[str, ...] = ()
    fallback: Optional[str] = None
