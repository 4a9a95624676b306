"""Payment recording - marks a cuota paid and freezes its mora"""

from datetime import date
from decimal import Decimal
from typing import List

from cuotas_gateway.domain.exceptions import InstallmentAlreadyPaidError
from cuotas_gateway.domain.models import EstadoCuota, FrozenMora, Installment
from cuotas_gateway.domain.mora import calculate_mora
from cuotas_gateway.domain.redistribution import validate_date, validate_index, with_refreshed_total
from cuotas_gateway.utils.date_utils import DateLike


def mark_paid(
    cuotas: List[Installment],
    index: int,
    payment_date: DateLike,
    today: date,
) -> List[Installment]:
    """
    Record payment of one installment.

    Mora at payment time:
    - Down payment: always 0
    - Manual override already set (including 0): kept as is
    - Otherwise: calculated once for today and stored as a non-manual snapshot

    Raises:
        InstallmentAlreadyPaidError: The installment is already paid
        InvalidInputError: Bad index or payment date
    """
    validate_index(cuotas, index)
    fecha_pago = validate_date(payment_date, "fecha_pago")
    cuota = cuotas[index]

    if cuota.is_paid:
        raise InstallmentAlreadyPaidError(f"Installment {cuota.numero} is already paid")

    if cuota.is_down_payment:
        mora = FrozenMora(amount=Decimal("0.00"))
    elif isinstance(cuota.mora, FrozenMora) and cuota.mora.manual:
        mora = cuota.mora
    else:
        mora = FrozenMora(amount=calculate_mora(cuota.vencimiento, cuota.monto, today))

    updated = list(cuotas)
    updated[index] = with_refreshed_total(
        cuota,
        mora=mora,
        fecha_pago=fecha_pago,
        estado=EstadoCuota.PAID,
    )
    return updated
