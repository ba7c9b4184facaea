from __future__ import annotations

from typing import Any, Dict, List, Optional

from tipsplit.domain.models import BillItem, ModelValidationError
from tipsplit.domain.money import MoneyError, finite_float, parse_amount


class ApiValidationError(ValueError):
    """Raised when request payload validation fails."""


# $10,000,000.00 safety bound on bill and item amounts
MAX_ABS_AMOUNT = 10_000_000.00


# op name -> required argument fields, in call order
ROSTER_OPERATIONS: Dict[str, tuple] = {
    "increment_participants": (),
    "decrement_participants": (),
    "delete_participant": ("index",),
    "rename_participant": ("index", "name"),
    "add_item": ("name", "price", "assigned_to"),
    "edit_item": ("id", "name", "price", "assigned_to"),
    "delete_item": ("id",),
    "clear_items": (),
}


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def parse_number(raw: object, field: str, *, max_abs: Optional[float] = None) -> float:
    """
    Accept a JSON number or a decimal string such as "12.50".
    """
    if isinstance(raw, str):
        try:
            value = parse_amount(raw)
        except MoneyError as e:
            raise ApiValidationError(f"'{field}' is not a valid amount.") from e
    elif isinstance(raw, (int, float)) and not isinstance(raw, bool):
        value = finite_float(raw)
        if value is None:
            raise ApiValidationError(f"'{field}' must be a finite number.")
    else:
        raise ApiValidationError(f"'{field}' must be a number or decimal string.")

    if max_abs is not None and abs(value) > max_abs:
        raise ApiValidationError(f"'{field}' exceeds the safety limit of {max_abs:,.2f}.")
    return value


def parse_participant_count(raw: object, *, max_participants: int) -> int:
    if not _is_int(raw) or not 1 <= raw <= max_participants:
        raise ApiValidationError(
            f"'participant_count' must be an int between 1 and {max_participants}."
        )
    return raw


def parse_assigned_to(raw: object, where: str) -> List[int]:
    if not isinstance(raw, list):
        raise ApiValidationError(f"{where} must include 'assigned_to' as a list of ints.")
    for idx in raw:
        if not _is_int(idx) or idx < 1:
            raise ApiValidationError(f"{where} has an invalid participant index: {idx!r}")
    return raw


def parse_bill_items(raw_items: object) -> List[BillItem]:
    if not isinstance(raw_items, list):
        raise ApiValidationError("'items' must be a list.")

    items: List[BillItem] = []
    seen_ids: set[str] = set()
    for idx, raw_item in enumerate(raw_items):
        where = f"Item at index {idx}"
        if not isinstance(raw_item, dict):
            raise ApiValidationError(f"{where} must be an object.")

        item_id = raw_item.get("id") or f"i{idx}"
        name = raw_item.get("name")
        price = raw_item.get("price")

        if not isinstance(item_id, str):
            raise ApiValidationError(f"{where} has a non-string 'id'.")
        if item_id in seen_ids:
            raise ApiValidationError(f"Item ids must be unique: {item_id}")
        seen_ids.add(item_id)

        if not isinstance(name, str) or not name.strip():
            raise ApiValidationError(f"{where} must include a non-empty 'name'.")
        if finite_float(price) is None or price < 0:
            raise ApiValidationError(f"{where} must include 'price' as a number >= 0.")
        if price > MAX_ABS_AMOUNT:
            raise ApiValidationError(f"{where} 'price' exceeds the safety limit of {MAX_ABS_AMOUNT:,.2f}.")

        assigned_to = parse_assigned_to(raw_item.get("assigned_to"), where)
        try:
            items.append(
                BillItem(id=item_id, name=name.strip(), price=price, assigned_to=tuple(assigned_to))
            )
        except ModelValidationError as e:
            raise ApiValidationError(f"{where}: {e}") from e

    return items


def parse_names(raw_names: object) -> Dict[int, str]:
    """
    names arrive as a JSON object keyed by participant index, e.g. {"1": "Ana"}.
    """
    if raw_names is None:
        return {}
    if not isinstance(raw_names, dict):
        raise ApiValidationError("'names' must be an object mapping index -> name.")

    names: Dict[int, str] = {}
    for key, value in raw_names.items():
        if not isinstance(key, str) or not key.isdigit() or int(key) < 1:
            raise ApiValidationError(f"Invalid participant index in 'names': {key!r}")
        if not isinstance(value, str):
            raise ApiValidationError(f"Name for participant {key} must be a string.")
        names[int(key)] = value
    return names


def parse_operations(raw_ops: object) -> List[Dict[str, Any]]:
    if not isinstance(raw_ops, list):
        raise ApiValidationError("'operations' must be a list.")

    ops: List[Dict[str, Any]] = []
    for idx, raw_op in enumerate(raw_ops):
        if not isinstance(raw_op, dict):
            raise ApiValidationError(f"Operation at index {idx} must be an object.")
        op = raw_op.get("op")
        if op not in ROSTER_OPERATIONS:
            raise ApiValidationError(f"Operation at index {idx} has unknown 'op': {op!r}")
        missing = [f for f in ROSTER_OPERATIONS[op] if f not in raw_op]
        if missing:
            raise ApiValidationError(
                f"Operation at index {idx} ({op}) is missing: {', '.join(missing)}"
            )
        ops.append(raw_op)
    return ops
