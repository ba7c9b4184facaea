from __future__ import annotations

import logging
from typing import Any, Dict

from flask import Blueprint, current_app, jsonify, request

from tipsplit.api.validators import (
    MAX_ABS_AMOUNT,
    ROSTER_OPERATIONS,
    ApiValidationError,
    parse_bill_items,
    parse_names,
    parse_number,
    parse_operations,
    parse_participant_count,
)
from tipsplit.domain.models import ItemizedSplit, ModelValidationError
from tipsplit.domain.money import DEFAULT_TIP_PERCENT, TIP_PRESETS, format_currency, round_cents
from tipsplit.domain.roster import DEFAULT_MAX_PARTICIPANTS, RosterStore
from tipsplit.domain.split_logic import compute_itemized_split, compute_simple_split

logger = logging.getLogger(__name__)

api_bp = Blueprint("api", __name__, url_prefix="/api")


def _json_error(message: str, *, status: int = 400, code: str = "bad_request"):
    return jsonify({"error": {"code": code, "message": message}}), status


def _max_participants() -> int:
    return current_app.config.get("MAX_PARTICIPANTS", DEFAULT_MAX_PARTICIPANTS)


def _json_body() -> Dict[str, Any]:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ApiValidationError("Request body must be a JSON object.")
    return data


def _tip_percent(data: Dict[str, Any]) -> float:
    raw = data.get("tip_percent")
    if raw is None:
        return current_app.config.get("DEFAULT_TIP_PERCENT", DEFAULT_TIP_PERCENT)
    return parse_number(raw, "tip_percent")


def _itemized_payload(split: ItemizedSplit, store: RosterStore | None = None) -> Dict[str, Any]:
    def label(index: int) -> str:
        return store.label_for(index) if store is not None else f"Person {index}"

    return {
        "subtotal": split.subtotal,
        "tip_amount": split.tip_amount,
        "total_bill": split.total_bill,
        "formatted": {
            "subtotal": format_currency(split.subtotal),
            "tip_amount": format_currency(split.tip_amount),
            "total_bill": format_currency(split.total_bill),
        },
        "results": [
            {
                "person_index": r.person_index,
                "label": label(r.person_index),
                "base_amount": r.base_amount,
                "tip_amount": r.tip_amount,
                "total_amount": r.total_amount,
                "formatted_total": format_currency(r.total_amount),
                "item_ids": [it.id for it in r.items],
            }
            for r in split.results
        ],
    }


@api_bp.errorhandler(ApiValidationError)
@api_bp.errorhandler(ModelValidationError)
def _validation_error(e: ValueError):
    logger.info("rejected request to %s: %s", request.path, e)
    return _json_error(str(e), status=400)


@api_bp.get("/health")
def health():
    return jsonify({"status": "ok"}), 200


@api_bp.get("/tip-presets")
def tip_presets():
    return jsonify(
        {
            "presets": list(TIP_PRESETS),
            "default_tip_percent": current_app.config.get("DEFAULT_TIP_PERCENT", DEFAULT_TIP_PERCENT),
            "max_participants": _max_participants(),
        }
    ), 200


@api_bp.post("/split/simple")
def simple_split_endpoint():
    """
    JSON: {bill, tip_percent, participant_count}
    bill/tip_percent may be numbers or decimal strings. Out-of-range values
    are clamped by the calculator, not rejected.
    """
    data = _json_body()
    if "bill" not in data:
        raise ApiValidationError("Missing field: bill")

    bill = parse_number(data["bill"], "bill", max_abs=MAX_ABS_AMOUNT)
    tip = _tip_percent(data)
    count = data.get("participant_count", 1)
    if isinstance(count, bool) or not isinstance(count, (int, float)):
        raise ApiValidationError("'participant_count' must be a number.")

    result = compute_simple_split(bill, tip, count)
    return jsonify(
        {
            "tip_amount": result.tip_amount,
            "total_bill": result.total_bill,
            "per_person": result.per_person,
            "formatted": {
                "tip_amount": format_currency(result.tip_amount),
                "total_bill": format_currency(result.total_bill),
                "per_person": format_currency(result.per_person),
            },
        }
    ), 200


@api_bp.post("/split/itemized")
def itemized_split_endpoint():
    data = _json_body()
    try:
        raw_items = data["items"]
        raw_count = data["participant_count"]
    except KeyError as e:
        raise ApiValidationError(f"Missing field: {e.args[0]}") from e

    items = parse_bill_items(raw_items)
    count = parse_participant_count(raw_count, max_participants=_max_participants())
    split = compute_itemized_split(items, _tip_percent(data), count)
    return jsonify(_itemized_payload(split)), 200


@api_bp.post("/roster/apply")
def roster_apply_endpoint():
    """
    Replay store operations against a roster snapshot.

    JSON: {participant_count, names?, items?, tip_percent?, operations: [{op, ...}]}
    Each request gets its own RosterStore; nothing is kept between requests.
    """
    data = _json_body()
    if "participant_count" not in data:
        raise ApiValidationError("Missing field: participant_count")

    max_participants = _max_participants()
    count = parse_participant_count(data["participant_count"], max_participants=max_participants)
    names = parse_names(data.get("names"))
    items = parse_bill_items(data.get("items", []))
    operations = parse_operations(data.get("operations", []))
    tip = _tip_percent(data)

    store = RosterStore.from_snapshot(count, names, items, max_participants=max_participants)

    outcomes = []
    for op in operations:
        method = getattr(store, op["op"])
        args = [op[f] for f in ROSTER_OPERATIONS[op["op"]]]
        if op["op"] in ("add_item", "edit_item") and not isinstance(op["assigned_to"], list):
            outcome = {"op": op["op"], "applied": False, "reason": "'assigned_to' must be a list"}
        else:
            result = method(*args)
            outcome = {"op": op["op"], "applied": result.applied, "reason": result.reason}
            if result.item_id is not None:
                outcome["item_id"] = result.item_id
        outcomes.append(outcome)

    split = store.split(tip)
    return jsonify(
        {
            "operations": outcomes,
            "state": store.snapshot(),
            "participants": [{"index": p.index, "label": p.label} for p in store.participants],
            "unassigned_item_ids": [it.id for it in store.unassigned_items],
            "split": _itemized_payload(split, store),
            "per_person_rounded": {
                str(r.person_index): round_cents(r.total_amount) for r in split.results
            },
        }
    ), 200
