"""Shared value objects (ItemStackData, FluidStackData, ChunkRange)."""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class ItemStackData:
    """
    An item identifier plus a stack count.

    consumed is None when the recipe does not say; only an explicit False
    marks a catalyst that is not used up.
    """
    item_id: str
    count: int = 1
    nbt: Optional[Dict[str, Any]] = field(default=None, hash=False)
    consumed: Optional[bool] = None

    @classmethod
    def not_consumed(cls, item_id: str, count: int = 1) -> 'ItemStackData':
        return cls(item_id=item_id, count=count, consumed=False)

    @property
    def has_nbt(self) -> bool:
        return bool(self.nbt)

    @property
    def is_consumed(self) -> bool:
        return self.consumed is not False

    def to_json_map(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"itemId": self.item_id, "count": self.count}
        if self.has_nbt:
            data["nbt"] = self.nbt
        if self.consumed is False:
            data["consumed"] = False
        return data


@dataclass(frozen=True)
class FluidStackData:
    """
    A fluid identifier plus an amount in millibuckets.
    """
    fluid_id: str
    amount: int

    def to_json_map(self) -> Dict[str, Any]:
        return {"fluidId": self.fluid_id, "amount": self.amount}


@dataclass(frozen=True)
class ChunkRange:
    """
    Byte range of a single chunk within a payload.

    Attributes:
        index: 0-based chunk index, the sole addressing key for resume
        start: Inclusive start offset
        end: Exclusive end offset
    """
    index: int
    start: int
    end: int

    @property
    def size(self) -> int:
        return self.end - self.start
