from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, Optional


@dataclass(frozen=True)
class EntitlementState:
    """Immutable snapshot of what the user owns and has selected.

    Invariants kept by EntitlementStore:
    - active_item_id is in owned_item_ids
    - owned_item_ids contains every default-owned catalog item
    - balance >= 0
    """

    active_item_id: str
    owned_item_ids: FrozenSet[str]
    balance: int

    def owns(self, item_id: str) -> bool:
        return item_id in self.owned_item_ids

    def to_dict(self) -> Dict[str, Any]:
        return {
            "active_item_id": self.active_item_id,
            "owned_item_ids": sorted(self.owned_item_ids),
            "balance": self.balance,
        }


class Rejection(str, Enum):
    UNKNOWN_ITEM = "unknown_item"
    NOT_OWNED = "not_owned"
    ALREADY_OWNED = "already_owned"
    INSUFFICIENT_BALANCE = "insufficient_balance"


@dataclass(frozen=True)
class OperationResult:
    """Outcome of a store operation; rejections are values, not exceptions."""

    snapshot: EntitlementState
    reason: Optional[Rejection] = None
    message: str = ""
    details: Dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.reason is None

    def __bool__(self) -> bool:
        return self.ok
