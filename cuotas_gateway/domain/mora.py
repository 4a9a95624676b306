"""Late fee (mora) engine - tiered daily penalty on overdue installments"""

from datetime import date
from decimal import Decimal, ROUND_HALF_UP

from cuotas_gateway.domain.models import Installment, FrozenMora

CENT = Decimal("0.01")
# Largest value a Numeric(14, 2) money column holds
MAX_AMOUNT = Decimal("999999999999.99")

GRACE_DAYS = 5
FIRST_TIER_LAST_DAY = 14
FIRST_TIER_DAILY_RATE = Decimal("0.01")  # 1% per day, days 6-14
SECOND_TIER_DAILY_RATE = Decimal("0.015")  # 1.5% per day from day 15


def to_cents(amount: Decimal) -> Decimal:
    """Round a money amount to the cent"""
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def calculate_mora(vencimiento: date, monto: Decimal, today: date) -> Decimal:
    """
    Late fee accrued on an installment as of today.

    Tiers (days = today - vencimiento):
    - days <= 5:   0 (grace window, includes not-yet-due)
    - 6..14 days:  1% of monto per day past the grace window
    - 15+ days:    9% for the first tier plus 1.5% per day from day 15

    Example:
        monto 1000, 15 days late → 1000 × (9% + 1.5%) = 105.00
    """
    days_overdue = (today - vencimiento).days

    if days_overdue <= GRACE_DAYS:
        return Decimal("0.00")

    if days_overdue <= FIRST_TIER_LAST_DAY:
        rate = (days_overdue - GRACE_DAYS) * FIRST_TIER_DAILY_RATE
    else:
        first_tier = (FIRST_TIER_LAST_DAY - GRACE_DAYS) * FIRST_TIER_DAILY_RATE
        rate = first_tier + (days_overdue - FIRST_TIER_LAST_DAY) * SECOND_TIER_DAILY_RATE

    return to_cents(monto * rate)


def effective_mora(cuota: Installment, today: date) -> Decimal:
    """Mora to display: frozen values win, Auto is recomputed for today"""
    if cuota.is_down_payment:
        return Decimal("0.00")
    if isinstance(cuota.mora, FrozenMora):
        return cuota.mora.amount
    return calculate_mora(cuota.vencimiento, cuota.monto, today)


def effective_total(cuota: Installment, today: date) -> Decimal:
    """monto plus the displayed mora"""
    return cuota.monto + effective_mora(cuota, today)
