from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, Field, field_validator, model_validator


class Tier(str, Enum):
    FREE = "free"
    PREMIUM = "premium"


@dataclass(frozen=True)
class Item:
    """Static definition of an unlockable appearance theme."""

    id: str
    name: str
    tier: Tier
    price: int = 0
    default_owned: bool = False
    dark: bool = False

    @property
    def is_premium(self) -> bool:
        return self.tier is Tier.PREMIUM

    @property
    def purchasable(self) -> bool:
        return self.is_premium and not self.default_owned


class CatalogEntry(BaseModel):
    """Schema for a single row of the catalog file."""

    id: str = Field(..., description="Unique theme id, also the persisted value")
    name: str = Field(..., description="Display name")
    tier: Tier = Field(Tier.FREE, description="free themes are owned by everyone")
    price: int = Field(0, ge=0, description="Coin price, premium only")
    dark: bool = Field(False, description="Theme uses a dark colour scheme")

    @field_validator("id", "name")
    @classmethod
    def strip_not_empty(cls, v: str) -> str:
        v = str(v).strip()
        if not v:
            raise ValueError("must not be empty")
        return v

    @model_validator(mode="after")
    def free_items_cost_nothing(self) -> "CatalogEntry":
        if self.tier is Tier.FREE and self.price != 0:
            raise ValueError(f"free item '{self.id}' must have price 0")
        return self

    def to_item(self) -> Item:
        return Item(
            id=self.id,
            name=self.name,
            tier=self.tier,
            price=self.price,
            default_owned=self.tier is Tier.FREE,
            dark=self.dark,
        )
