# backend/tipsplit/domain/models.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from tipsplit.domain.money import finite_float


class ModelValidationError(ValueError):
    """Raised when domain models fail basic validation."""


def default_label(index: int) -> str:
    return f"Person {index}"


@dataclass(frozen=True)
class Participant:
    """
    A person taking part in the split.
    index is 1-based and dense within the current roster.
    """
    index: int
    display_name: Optional[str] = None

    def __post_init__(self) -> None:
        if not isinstance(self.index, int) or isinstance(self.index, bool) or self.index < 1:
            raise ModelValidationError("Participant.index must be an int >= 1")
        if self.display_name is not None and not isinstance(self.display_name, str):
            raise ModelValidationError("Participant.display_name must be a string or None")

    @property
    def label(self) -> str:
        if self.display_name and self.display_name.strip():
            return self.display_name
        return default_label(self.index)


@dataclass(frozen=True)
class BillItem:
    """
    A bill line item.

    assigned_to holds 1-based participant indices, sorted and unique.
    An empty assignment is representable (the split engine leaves the
    price unsplit) but the roster store never accepts one on add/edit.
    """
    id: str
    name: str
    price: float
    assigned_to: Tuple[int, ...] = ()

    def __post_init__(self) -> None:
        if not isinstance(self.id, str) or not self.id.strip():
            raise ModelValidationError("BillItem.id must be a non-empty string")
        if not isinstance(self.name, str) or not self.name.strip():
            raise ModelValidationError("BillItem.name must be a non-empty string")
        if not isinstance(self.price, (int, float)) or isinstance(self.price, bool):
            raise ModelValidationError("BillItem.price must be a number")
        if finite_float(self.price) is None or self.price < 0:
            raise ModelValidationError("BillItem.price must be a finite number >= 0")
        for idx in self.assigned_to:
            if not isinstance(idx, int) or isinstance(idx, bool) or idx < 1:
                raise ModelValidationError("BillItem.assigned_to entries must be ints >= 1")
        # Normalize so equality does not depend on selection order.
        object.__setattr__(self, "assigned_to", tuple(sorted(set(self.assigned_to))))

    @property
    def price_per_person(self) -> float:
        if not self.assigned_to:
            return 0.0
        return self.price / len(self.assigned_to)


@dataclass
class PersonResult:
    """
    One participant's share of an itemized bill. Amounts are unrounded.
    """
    person_index: int
    base_amount: float = 0.0
    tip_amount: float = 0.0
    total_amount: float = 0.0
    items: List[BillItem] = field(default_factory=list)


@dataclass(frozen=True)
class SimpleSplit:
    """
    Even split of one bill amount. All three values are rounded to cents.
    """
    tip_amount: float
    total_bill: float
    per_person: float


@dataclass(frozen=True)
class ItemizedSplit:
    """
    Output of the itemized engine.

    subtotal is the sum of every item price, whether or not its
    assignment reached a current participant.
    """
    total_bill: float
    tip_amount: float
    subtotal: float
    results: Tuple[PersonResult, ...]

    def for_person(self, index: int) -> PersonResult:
        for r in self.results:
            if r.person_index == index:
                return r
        raise KeyError(index)

    @property
    def allocated_subtotal(self) -> float:
        return sum(r.base_amount for r in self.results)
