# backend/tipsplit/domain/roster.py
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence

from tipsplit.domain.models import (
    BillItem,
    ItemizedSplit,
    ModelValidationError,
    Participant,
    default_label,
)
from tipsplit.domain.money import finite_float
from tipsplit.domain.split_logic import compute_itemized_split

logger = logging.getLogger(__name__)

DEFAULT_MAX_PARTICIPANTS = 20


@dataclass(frozen=True)
class MutationResult:
    """
    Outcome of a store mutation. A rejected mutation leaves the store as it was.
    """
    applied: bool
    reason: Optional[str] = None
    item_id: Optional[str] = None

    def __bool__(self) -> bool:
        return self.applied


def _new_item_id() -> str:
    return uuid.uuid4().hex


def _rejected(op: str, reason: str) -> MutationResult:
    logger.info("roster %s rejected: %s", op, reason)
    return MutationResult(applied=False, reason=reason)


class RosterStore:
    """
    In-memory participants and bill items for one session.

    Holds these at all times:
      - participant indices are exactly 1..participant_count
      - participant_count >= 1
      - no item assignment references an index above participant_count
      - items accepted through add_item/edit_item have a name, a finite
        price > 0 and a non-empty assignment
    """

    def __init__(
        self,
        participant_count: int = 1,
        *,
        max_participants: int = DEFAULT_MAX_PARTICIPANTS,
        id_factory: Callable[[], str] = _new_item_id,
    ):
        if not isinstance(max_participants, int) or max_participants < 1:
            raise ModelValidationError("max_participants must be an int >= 1")
        if not isinstance(participant_count, int) or not 1 <= participant_count <= max_participants:
            raise ModelValidationError(
                f"participant_count must be an int within [1, {max_participants}]"
            )
        self.max_participants = max_participants
        self._id_factory = id_factory
        self._participant_count = participant_count
        self._names: Dict[int, str] = {}
        self._items: List[BillItem] = []
        self._listeners: List[Callable[["RosterStore"], None]] = []

    # --- queries ---

    @property
    def participant_count(self) -> int:
        return self._participant_count

    @property
    def participants(self) -> List[Participant]:
        return [
            Participant(index=i, display_name=self._names.get(i))
            for i in range(1, self._participant_count + 1)
        ]

    @property
    def names(self) -> Dict[int, str]:
        return dict(self._names)

    @property
    def items(self) -> List[BillItem]:
        return list(self._items)

    @property
    def unassigned_items(self) -> List[BillItem]:
        return [it for it in self._items if not it.assigned_to]

    @property
    def item_subtotal(self) -> float:
        return sum(it.price for it in self._items)

    def label_for(self, index: int) -> str:
        return self._names.get(index) or default_label(index)

    def get_item(self, item_id: str) -> Optional[BillItem]:
        return next((it for it in self._items if it.id == item_id), None)

    def split(self, tip_percent: float) -> ItemizedSplit:
        return compute_itemized_split(self._items, tip_percent, self._participant_count)

    def snapshot(self) -> Dict[str, Any]:
        return {
            "participant_count": self._participant_count,
            "names": {str(k): v for k, v in sorted(self._names.items())},
            "items": [
                {
                    "id": it.id,
                    "name": it.name,
                    "price": it.price,
                    "assigned_to": list(it.assigned_to),
                }
                for it in self._items
            ],
        }

    @classmethod
    def from_snapshot(
        cls,
        participant_count: int,
        names: Optional[Mapping[int, str]] = None,
        items: Sequence[BillItem] = (),
        **kwargs,
    ) -> "RosterStore":
        """
        Rebuild a store from previously exported state.
        Raises ModelValidationError if the state breaks a store invariant.
        """
        store = cls(participant_count, **kwargs)
        for index, name in (names or {}).items():
            if not 1 <= index <= participant_count:
                raise ModelValidationError(f"name given for unknown participant {index}")
            if not isinstance(name, str):
                raise ModelValidationError("participant names must be strings")
            if name.strip():
                store._names[index] = name.strip()

        seen_ids = set()
        for item in items:
            if item.id in seen_ids:
                raise ModelValidationError(f"duplicate item id: {item.id}")
            seen_ids.add(item.id)
            if item.price <= 0:
                raise ModelValidationError(f"item {item.id} must have a price > 0")
            for idx in item.assigned_to:
                if idx > participant_count:
                    raise ModelValidationError(
                        f"item {item.id} is assigned to unknown participant {idx}"
                    )
            store._items.append(item)
        return store

    # --- change notification ---

    def subscribe(self, callback: Callable[["RosterStore"], None]) -> Callable[[], None]:
        """
        Call callback(store) after every applied mutation.
        Returns a function that removes the subscription.
        """
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def _applied(self, op: str, *, item_id: Optional[str] = None) -> MutationResult:
        logger.debug(
            "roster %s applied: participants=%d items=%d",
            op,
            self._participant_count,
            len(self._items),
        )
        for callback in list(self._listeners):
            callback(self)
        return MutationResult(applied=True, item_id=item_id)

    # --- participants ---

    def _is_index(self, index) -> bool:
        return (
            isinstance(index, int)
            and not isinstance(index, bool)
            and 1 <= index <= self._participant_count
        )

    def increment_participants(self) -> MutationResult:
        if self._participant_count >= self.max_participants:
            return _rejected("increment", f"already at {self.max_participants} participants")
        self._participant_count += 1
        return self._applied("increment")

    def decrement_participants(self) -> MutationResult:
        last = self._participant_count
        if last <= 1:
            return _rejected("decrement", "at least one participant is required")
        if any(last in it.assigned_to for it in self._items):
            return _rejected("decrement", f"participant {last} still has assigned items")
        self._names.pop(last, None)
        self._participant_count = last - 1
        return self._applied("decrement")

    def delete_participant(self, index: int) -> MutationResult:
        """
        Remove one participant and close the gap it leaves.

        Names and item assignments above index move down by one. The new
        names and items are built first and swapped in together.
        """
        if self._participant_count <= 1:
            return _rejected("delete_participant", "cannot delete the last participant")
        if not self._is_index(index):
            return _rejected("delete_participant", f"unknown participant {index}")

        names = {
            (k - 1 if k > index else k): v
            for k, v in self._names.items()
            if k != index
        }
        items = [
            replace(
                it,
                assigned_to=tuple(p - 1 if p > index else p for p in it.assigned_to if p != index),
            )
            for it in self._items
        ]

        self._names = names
        self._items = items
        self._participant_count -= 1
        return self._applied("delete_participant")

    def rename_participant(self, index: int, name: str) -> MutationResult:
        if not self._is_index(index):
            return _rejected("rename_participant", f"unknown participant {index}")
        if not isinstance(name, str) or not name.strip():
            return _rejected("rename_participant", "name must not be blank")
        self._names[index] = name.strip()
        return self._applied("rename_participant")

    # --- items ---

    def _validate_item(self, name, price, assigned_to) -> Optional[str]:
        if not isinstance(name, str) or not name.strip():
            return "item name must not be blank"
        if not isinstance(price, (int, float)) or isinstance(price, bool):
            return "item price must be a number"
        if finite_float(price) is None or price <= 0:
            return "item price must be a finite number > 0"
        if not assigned_to:
            return "item must be assigned to at least one participant"
        for idx in assigned_to:
            if not self._is_index(idx):
                return f"item assigned to unknown participant {idx}"
        return None

    def add_item(self, name: str, price: float, assigned_to: Iterable[int]) -> MutationResult:
        assigned = tuple(assigned_to)
        problem = self._validate_item(name, price, assigned)
        if problem:
            return _rejected("add_item", problem)

        item = BillItem(id=self._id_factory(), name=name.strip(), price=price, assigned_to=assigned)
        self._items.append(item)
        return self._applied("add_item", item_id=item.id)

    def edit_item(
        self, item_id: str, name: str, price: float, assigned_to: Iterable[int]
    ) -> MutationResult:
        pos = next((i for i, it in enumerate(self._items) if it.id == item_id), None)
        if pos is None:
            return _rejected("edit_item", f"unknown item {item_id}")

        assigned = tuple(assigned_to)
        problem = self._validate_item(name, price, assigned)
        if problem:
            return _rejected("edit_item", problem)

        self._items[pos] = BillItem(id=item_id, name=name.strip(), price=price, assigned_to=assigned)
        return self._applied("edit_item", item_id=item_id)

    def delete_item(self, item_id: str) -> MutationResult:
        remaining = [it for it in self._items if it.id != item_id]
        if len(remaining) == len(self._items):
            return _rejected("delete_item", f"unknown item {item_id}")
        self._items = remaining
        return self._applied("delete_item", item_id=item_id)

    def clear_items(self) -> MutationResult:
        self._items = []
        return self._applied("clear_items")
