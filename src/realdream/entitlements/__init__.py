from .state import EntitlementState, OperationResult, Rejection
from .events import EventBus, PurchaseCompleted, PurchaseRejected, StateChanged, StorageFailed
from .store import EntitlementStore, open_store

__all__ = [
    "EntitlementState",
    "OperationResult",
    "Rejection",
    "EventBus",
    "PurchaseCompleted",
    "PurchaseRejected",
    "StateChanged",
    "StorageFailed",
    "EntitlementStore",
    "open_store",
]
