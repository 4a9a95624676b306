"""Read-only projections over a contract's cuotas (used by list views)"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import List

from cuotas_gateway.domain.models import Contract, EstadoCuota, Installment
from cuotas_gateway.domain.mora import effective_total

OVERDUE = "overdue"


@dataclass
class ContractStatus:
    """Progress of a contract's regular installments"""

    label: str  # "no_schedule" | "completed" | "owes"
    pending_count: int
    paid_count: int


@dataclass
class AccountTotals:
    """Paid vs outstanding amounts, mora included"""

    total_paid: Decimal
    total_pending: Decimal


def is_overdue(cuota: Installment, today: date) -> bool:
    """Pending regular installment whose due date is before today"""
    return cuota.estado == EstadoCuota.PENDING and cuota.numero > 0 and cuota.vencimiento < today


def view_estado(cuota: Installment, today: date) -> str:
    if is_overdue(cuota, today):
        return OVERDUE
    return cuota.estado.value


def contract_status(contract: Contract) -> ContractStatus:
    if not contract.cuotas:
        return ContractStatus(label="no_schedule", pending_count=0, paid_count=0)

    regular = [c for c in contract.cuotas if c.numero > 0]
    paid = sum(1 for c in regular if c.is_paid)
    pending = len(regular) - paid
    label = "completed" if pending == 0 else "owes"
    return ContractStatus(label=label, pending_count=pending, paid_count=paid)


def account_totals(contract: Contract, today: date) -> AccountTotals:
    """Paid rows count their frozen total; unpaid rows their current total"""
    total_paid = Decimal("0")
    total_pending = Decimal("0")
    for cuota in contract.cuotas:
        if cuota.is_paid:
            total_paid += cuota.total
        else:
            total_pending += effective_total(cuota, today)
    return AccountTotals(total_paid=total_paid, total_pending=total_pending)


def has_overdue(contract: Contract, today: date) -> bool:
    return any(is_overdue(c, today) for c in contract.cuotas)


def has_pending_this_month(contract: Contract, today: date) -> bool:
    """Any pending regular installment due in today's month"""
    return any(
        c.estado == EstadoCuota.PENDING
        and c.numero > 0
        and (c.vencimiento.year, c.vencimiento.month) == (today.year, today.month)
        for c in contract.cuotas
    )


def filter_contracts(contracts: List[Contract], view: str, today: date) -> List[Contract]:
    if view == "overdue":
        return [c for c in contracts if has_overdue(c, today)]
    if view == "due_this_month":
        return [c for c in contracts if has_pending_this_month(c, today)]
    return list(contracts)
