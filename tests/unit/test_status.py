"""Unit tests for derived status projections"""

from datetime import date
from decimal import Decimal
from cuotas_gateway.domain.installments import generate_schedule
from cuotas_gateway.domain.models import EstadoCuota, FrozenMora, Installment
from cuotas_gateway.domain.payments import mark_paid
from cuotas_gateway.domain.status import (
    account_totals,
    contract_status,
    filter_contracts,
    is_overdue,
    view_estado,
)


def test_overdue_derivation():
    today = date(2025, 3, 1)
    regular = Installment(numero=1, vencimiento=date(2025, 2, 28), monto=Decimal("100"))
    down = Installment(numero=0, vencimiento=date(2025, 2, 28), monto=Decimal("100"))

    assert is_overdue(regular, today) is True
    assert view_estado(regular, today) == "overdue"
    assert is_overdue(down, today) is False
    assert view_estado(down, today) == "pending"


def test_not_overdue_on_due_date_or_when_paid():
    due = date(2025, 2, 28)
    cuota = Installment(numero=1, vencimiento=due, monto=Decimal("100"))
    paid = Installment(numero=1, vencimiento=due, monto=Decimal("100"), estado=EstadoCuota.PAID)

    assert is_overdue(cuota, due) is False
    assert is_overdue(paid, date(2025, 6, 1)) is False
    assert view_estado(paid, date(2025, 6, 1)) == "paid"


def test_contract_status(sample_contract, contract_factory):
    assert contract_status(contract_factory(cuotas=[])).label == "no_schedule"

    sample_contract.cuotas = generate_schedule(sample_contract)
    status = contract_status(sample_contract)
    assert (status.label, status.pending_count, status.paid_count) == ("owes", 3, 0)

    cuotas = sample_contract.cuotas
    for index in (1, 2, 3):
        cuotas = mark_paid(cuotas, index, date(2025, 1, 20), date(2025, 1, 20))
    sample_contract.cuotas = cuotas
    assert contract_status(sample_contract).label == "completed"


def test_account_totals(sample_contract):
    """Paid rows use their frozen total, unpaid rows the current total with mora"""
    cuotas = generate_schedule(sample_contract)
    cuotas = mark_paid(cuotas, 0, date(2025, 1, 15), date(2025, 1, 15))
    cuotas[2].mora = FrozenMora(Decimal("25.00"), manual=True)
    sample_contract.cuotas = cuotas

    # 2025-03-10: cuota 1 (due 02-28) is 10 days late → 5% of 3000 = 150
    totals = account_totals(sample_contract, date(2025, 3, 10))

    assert totals.total_paid == Decimal("1000.00")
    assert totals.total_pending == Decimal("3150.00") + Decimal("3025.00") + Decimal("3000.00")


def test_filter_contracts(contract_factory):
    today = date(2025, 4, 10)
    overdue = contract_factory(
        cuotas=[Installment(numero=1, vencimiento=date(2025, 3, 31), monto=Decimal("100"))]
    )
    due_this_month = contract_factory(
        cuotas=[Installment(numero=1, vencimiento=date(2025, 4, 30), monto=Decimal("100"))]
    )
    empty = contract_factory(cuotas=[])
    contracts = [overdue, due_this_month, empty]

    assert filter_contracts(contracts, "overdue", today) == [overdue]
    assert filter_contracts(contracts, "due_this_month", today) == [due_this_month]
    assert filter_contracts(contracts, "all", today) == contracts
