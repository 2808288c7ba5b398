from __future__ import annotations

import json
from dataclasses import dataclass
from typing import AbstractSet, FrozenSet, Generic, Optional, TypeVar

from .errors import StorageCorrupt

T = TypeVar("T")


@dataclass(frozen=True)
class StorageKeys:
    """Names of the three independently persisted entitlement values."""

    active: str = "@real_dream_theme"
    owned: str = "@real_dream_purchased_themes"
    balance: str = "@real_dream_user_coins"

    @classmethod
    def with_prefix(cls, prefix: str) -> "StorageKeys":
        return cls(
            active=f"{prefix}theme",
            owned=f"{prefix}purchased_themes",
            balance=f"{prefix}user_coins",
        )

    def all(self) -> tuple[str, str, str]:
        return (self.active, self.owned, self.balance)


@dataclass(frozen=True)
class Decoded(Generic[T]):
    """Outcome of decoding one stored value: either a value or an error."""

    value: Optional[T] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def fail(cls, error: str) -> "Decoded[T]":
        return cls(value=None, error=error)

    def unwrap(self) -> T:
        """Return the value or raise StorageCorrupt."""
        if self.error is not None:
            raise StorageCorrupt(self.error)
        return self.value  # type: ignore[return-value]


def decode_active(text: str) -> Decoded[str]:
    item_id = text.strip()
    if not item_id:
        return Decoded.fail("empty theme id")
    return Decoded(value=item_id)


def decode_owned(text: str) -> Decoded[FrozenSet[str]]:
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, TypeError) as e:
        return Decoded.fail(f"invalid JSON: {e}")
    if not isinstance(data, list):
        return Decoded.fail(f"expected a list, got {type(data).__name__}")
    if not all(isinstance(x, str) for x in data):
        return Decoded.fail("list contains non-string entries")
    return Decoded(value=frozenset(data))


def decode_balance(text: str) -> Decoded[int]:
    raw = text.strip()
    # int() accepts "1_000" and "+5"; stored balances are plain digits only.
    if not raw.isdigit() or not raw.isascii():
        return Decoded.fail(f"not a non-negative integer: {text!r}")
    return Decoded(value=int(raw))


def encode_active(item_id: str) -> str:
    return item_id


def encode_owned(premium_ids: AbstractSet[str]) -> str:
    return json.dumps(sorted(premium_ids))


def encode_balance(balance: int) -> str:
    if balance < 0:
        raise ValueError("balance cannot be negative")
    return str(int(balance))
