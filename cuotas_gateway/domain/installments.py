"""Installment schedule generation for installment-sale contracts"""

from decimal import Decimal, ROUND_DOWN
from typing import List

from cuotas_gateway.domain.exceptions import InvalidInputError
from cuotas_gateway.domain.models import Contract, FormaPago, FrozenMora, Installment
from cuotas_gateway.domain.mora import CENT, MAX_AMOUNT
from cuotas_gateway.utils.date_utils import month_end


def generate_schedule(contract: Contract) -> List[Installment]:
    """
    Build the initial cuota list from the contract terms.

    Requirements:
    - Down payment (numero 0) due on the registration date when inicial > 0
    - numero_cuotas regular installments, each due on the last day of the
      month, starting the month after registration
    - Base amount rounded down to the cent; the last installment absorbs the
      rounding remainder so the regular amounts add up to the financed total

    Example:
        financed 1000.00 over 3 → base 333.33
        [333.33, 333.33, 333.34]
    """
    if contract.down_payment < 0 or contract.monto_total < 0:
        raise InvalidInputError("Contract amounts cannot be negative")
    if contract.monto_total > MAX_AMOUNT:
        raise InvalidInputError(f"Contract price cannot exceed {MAX_AMOUNT}")
    if contract.financed < 0:
        raise InvalidInputError("Down payment exceeds the contract price")

    cuotas: List[Installment] = []

    if contract.down_payment > 0:
        cuotas.append(
            Installment(
                numero=0,
                vencimiento=contract.fecha_registro,
                monto=contract.down_payment,
                mora=FrozenMora(amount=Decimal("0.00")),
            )
        )

    count = contract.numero_cuotas or 0
    if count <= 0:
        return cuotas

    financed = contract.financed
    base_amount = (financed / count).quantize(CENT, rounding=ROUND_DOWN)

    for i in range(count):
        is_last = i == count - 1
        amount = financed - base_amount * (count - 1) if is_last else base_amount

        cuotas.append(
            Installment(
                numero=i + 1,
                vencimiento=month_end(contract.fecha_registro, i + 1),
                monto=amount,
            )
        )

    return cuotas


def schedule_warnings(contract: Contract) -> List[str]:
    """Data-quality conditions the caller should warn about"""
    warnings = []
    if contract.forma_pago == FormaPago.CUOTAS and not (contract.numero_cuotas or 0) > 0:
        warnings.append("Installment contract has no numero_cuotas; no schedule was produced")
    return warnings
