"""Manual corrections to a schedule: amounts, due dates and mora overrides.

Every function takes the current cuota list and returns a new list; the input
list and its installments are left untouched. Amount edits keep the regular
installments adding up to the financed total by moving the difference onto
the last regular installment, the balancing row of the schedule.
"""

from dataclasses import replace
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import List, Optional

from cuotas_gateway.domain.exceptions import InvalidInputError
from cuotas_gateway.domain.models import FrozenMora, Installment, stored_mora_amount
from cuotas_gateway.domain.mora import MAX_AMOUNT, to_cents
from cuotas_gateway.utils.date_utils import DateLike, month_end, parse_local_date


def validate_amount(value, field_name: str = "amount") -> Decimal:
    """Coerce to a cent-precise Decimal; reject non-numeric, negative or oversized values"""
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError) as e:
        raise InvalidInputError(f"{field_name} must be numeric, got {value!r}") from e

    if not amount.is_finite():
        raise InvalidInputError(f"{field_name} must be a finite number")
    if amount < 0:
        raise InvalidInputError(f"{field_name} cannot be negative")
    if amount > MAX_AMOUNT:
        raise InvalidInputError(f"{field_name} cannot exceed {MAX_AMOUNT}")
    return to_cents(amount)


def validate_date(value: DateLike, field_name: str = "date") -> date:
    try:
        return parse_local_date(value)
    except ValueError as e:
        raise InvalidInputError(f"{field_name} is not a valid date: {value!r}") from e


def validate_index(cuotas: List[Installment], index: int) -> None:
    if not isinstance(index, int) or isinstance(index, bool) or not 0 <= index < len(cuotas):
        raise InvalidInputError(f"Installment index {index!r} out of range (0..{len(cuotas) - 1})")


def last_regular_index(cuotas: List[Installment]) -> Optional[int]:
    """Position of the regular installment with the highest numero"""
    regular = [(cuota.numero, pos) for pos, cuota in enumerate(cuotas) if cuota.numero > 0]
    if not regular:
        return None
    return max(regular)[1]


def with_refreshed_total(cuota: Installment, **changes) -> Installment:
    """Copy of cuota with changes applied and total = monto + stored mora"""
    updated = replace(cuota, **changes)
    updated.total = updated.monto + stored_mora_amount(updated.mora)
    return updated


def apply_uniform_amount(
    cuotas: List[Installment],
    new_amount,
    financed: Decimal,
) -> List[Installment]:
    """
    Set every regular installment except the last to new_amount.

    The last regular installment is recomputed as
    financed - new_amount × (count - 1), so the regular amounts still add
    up to the financed total.

    Raises:
        InvalidInputError: Negative/non-numeric amount, or an amount so large
            the last installment would go below zero
    """
    amount = validate_amount(new_amount)
    last_index = last_regular_index(cuotas)
    if last_index is None:
        return list(cuotas)

    regular_count = sum(1 for cuota in cuotas if cuota.numero > 0)
    last_amount = to_cents(financed - amount * (regular_count - 1))
    if last_amount < 0:
        raise InvalidInputError(
            f"Amount {amount} × {regular_count - 1} exceeds the financed total {financed}"
        )

    updated = []
    for pos, cuota in enumerate(cuotas):
        if cuota.numero <= 0:
            updated.append(cuota)
        elif pos == last_index:
            updated.append(with_refreshed_total(cuota, monto=last_amount))
        else:
            updated.append(with_refreshed_total(cuota, monto=amount))
    return updated


def apply_single_amount(cuotas: List[Installment], index: int, new_amount) -> List[Installment]:
    """
    Override one installment's amount and move the difference to the last one.

    diff = old - new is added to the last regular installment (clamped at 0).
    Editing the last installment itself moves nothing. The difference always
    goes to the last installment, never to the next one.

    Example:
        [100, 100, 100], index 0 → 70
        diff 30 → [70, 100, 130]
    """
    validate_index(cuotas, index)
    amount = validate_amount(new_amount)
    if cuotas[index].is_down_payment:
        raise InvalidInputError("The down payment amount is fixed by the contract's inicial")

    updated = list(cuotas)
    old_amount = updated[index].monto
    updated[index] = with_refreshed_total(updated[index], monto=amount)

    last_index = last_regular_index(updated)
    diff = old_amount - amount
    if last_index is not None and last_index != index and diff != 0:
        last = updated[last_index]
        new_last_amount = max(Decimal("0"), to_cents(last.monto + diff))
        updated[last_index] = with_refreshed_total(last, monto=new_last_amount)

    return updated


def apply_single_date(cuotas: List[Installment], index: int, new_date: DateLike) -> List[Installment]:
    """Re-date one installment; nothing else moves"""
    validate_index(cuotas, index)
    due = validate_date(new_date, "vencimiento")

    updated = list(cuotas)
    updated[index] = replace(updated[index], vencimiento=due)
    return updated


def apply_cascading_date(cuotas: List[Installment], index: int, new_date: DateLike) -> List[Installment]:
    """
    Anchor one installment on an exact date and realign the ones after it.

    The installment at index gets new_date; the one at position p > index
    gets the last day of the month (p - index) months after new_date's month.
    Earlier installments keep their dates.

    Example:
        index 1 → 2025-03-15
        [.., 2025-03-15, 2025-04-30, 2025-05-31]
    """
    validate_index(cuotas, index)
    anchor = validate_date(new_date, "vencimiento")

    updated = []
    for pos, cuota in enumerate(cuotas):
        if pos < index:
            updated.append(cuota)
        elif pos == index:
            updated.append(replace(cuota, vencimiento=anchor))
        else:
            updated.append(replace(cuota, vencimiento=month_end(anchor, pos - index)))
    return updated


def set_manual_mora(cuotas: List[Installment], index: int, mora_amount) -> List[Installment]:
    """Freeze an operator-chosen mora (0 included) that is never recomputed"""
    validate_index(cuotas, index)
    amount = validate_amount(mora_amount, "mora")
    if cuotas[index].is_down_payment:
        raise InvalidInputError("The down payment never accrues mora")

    updated = list(cuotas)
    updated[index] = with_refreshed_total(updated[index], mora=FrozenMora(amount=amount, manual=True))
    return updated
