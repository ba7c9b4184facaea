# backend/tipsplit/domain/split_logic.py
from __future__ import annotations

from typing import Iterable, List

from tipsplit.domain.models import BillItem, ItemizedSplit, PersonResult, SimpleSplit
from tipsplit.domain.money import finite_float, round_cents


def _finite_or_zero(value: float) -> float:
    f = finite_float(value)
    return 0.0 if f is None else f


def _participant_count(value) -> int:
    f = finite_float(value)
    if f is None:
        return 1
    return max(1, value if isinstance(value, int) else int(f))


def compute_simple_split(bill: float, tip_percent: float, participant_count: int) -> SimpleSplit:
    """
    Split one bill evenly after adding a percentage tip.

    Inputs are clamped rather than rejected:
      bill -> max(0, bill)
      tip_percent -> within [0, 100]
      participant_count -> max(1, participant_count)
    NaN/infinite bill or tip (or an int too large for a float) counts as 0;
    a non-finite count as 1.

    tip_amount, total_bill and per_person are each rounded to cents from
    their unrounded values, so tip_amount + bill can differ from
    total_bill by half a cent.
    """
    valid_bill = max(0.0, _finite_or_zero(bill))
    valid_tip = max(0.0, min(_finite_or_zero(tip_percent), 100.0))
    people = _participant_count(participant_count)

    tip_amount = valid_bill * valid_tip / 100
    total_bill = valid_bill + tip_amount
    per_person = total_bill / people

    return SimpleSplit(
        tip_amount=round_cents(tip_amount),
        total_bill=round_cents(total_bill),
        per_person=round_cents(per_person),
    )


def compute_itemized_split(
    items: Iterable[BillItem], tip_percent: float, participant_count: int
) -> ItemizedSplit:
    """
    Split a list of items among participants, tip proportional to each
    participant's item subtotal.

    Each item's price is divided by the size of its assignment and added
    to every assigned participant still inside [1, participant_count].
    Assignments outside the roster are skipped: that share still counts in
    the aggregate subtotal but nobody carries it. No per-participant
    rounding is applied.
    """
    people = _participant_count(participant_count)
    tip = _finite_or_zero(tip_percent)

    results: List[PersonResult] = [PersonResult(person_index=i) for i in range(1, people + 1)]
    subtotal = 0.0

    for item in items:
        subtotal += item.price
        if not item.assigned_to:
            continue
        share = item.price_per_person
        for idx in item.assigned_to:
            if 1 <= idx <= people:
                person = results[idx - 1]
                person.base_amount += share
                person.items.append(item)

    for person in results:
        person.tip_amount = person.base_amount * tip / 100
        person.total_amount = person.base_amount + person.tip_amount

    total_tip = subtotal * tip / 100
    return ItemizedSplit(
        total_bill=subtotal + total_tip,
        tip_amount=total_tip,
        subtotal=subtotal,
        results=tuple(results),
    )
