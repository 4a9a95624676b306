"""Unit tests for the contract service (results, locking, persistence failures)"""

import copy
import threading
import time
from datetime import date
from decimal import Decimal
from unittest.mock import patch

from sqlalchemy.exc import OperationalError

from cuotas_gateway.domain.exceptions import PersistenceError
from cuotas_gateway.domain.installments import generate_schedule
from cuotas_gateway.domain.models import EstadoCuota, FrozenMora
from cuotas_gateway.services.contracts import ContractLocks, ContractService, Outcome


class SlowInMemoryRepository:
    """Repository stand-in whose reads are slow enough to interleave writers"""

    def __init__(self, contract):
        self.contracts = {contract.id: contract}

    def get_contract(self, contract_id):
        contract = self.contracts.get(contract_id)
        time.sleep(0.05)
        return copy.deepcopy(contract)

    def replace_contract(self, contract_id, contract):
        self.contracts[contract_id] = copy.deepcopy(contract)
        return contract


def regular_sum(contract):
    return sum((c.monto for c in contract.cuotas if c.numero > 0), Decimal("0"))


def test_register_contract_generates_schedule(service: ContractService, sample_contract):
    result = service.register_contract(sample_contract)

    assert result.ok
    assert result.outcome == Outcome.COMMITTED
    assert result.contract.id is not None
    assert len(result.contract.cuotas) == 4
    assert regular_sum(result.contract) == Decimal("9000.00")
    assert result.warnings == []


def test_register_duplicate_parcel_conflicts(service: ContractService, contract_factory):
    assert service.register_contract(contract_factory(manzana="C", lote="7")).ok

    result = service.register_contract(contract_factory(manzana=" c", lote="7 ", nombre1="Otro"))

    assert result.outcome == Outcome.CONFLICT
    assert result.contract is None


def test_register_degenerate_schedule_warns(service: ContractService, contract_factory):
    result = service.register_contract(contract_factory(numero_cuotas=0))

    assert result.ok
    assert [c.numero for c in result.contract.cuotas] == [0]
    assert result.warnings


def test_missing_contract_is_not_found(service: ContractService):
    result = service.update_single_amount("missing", 0, Decimal("10"))

    assert result.outcome == Outcome.NOT_FOUND
    assert result.contract is None
    assert service.delete_contract("missing").outcome == Outcome.NOT_FOUND


def test_invalid_input_leaves_contract_untouched(service: ContractService, sample_contract):
    contract_id = service.register_contract(sample_contract).contract.id

    result = service.update_single_amount(contract_id, 1, Decimal("-10"))

    assert result.outcome == Outcome.INVALID_INPUT
    assert service.get_contract(contract_id).cuotas[1].monto == Decimal("3000.00")


def test_single_amount_conserves_financed(service: ContractService, sample_contract):
    contract_id = service.register_contract(sample_contract).contract.id

    result = service.update_single_amount(contract_id, 1, Decimal("2500"))

    assert result.ok
    assert [c.monto for c in result.contract.cuotas[1:]] == [Decimal("2500.00"), Decimal("3000.00"), Decimal("3500.00")]
    assert regular_sum(service.get_contract(contract_id)) == Decimal("9000.00")


def test_uniform_amount_conserves_financed(service: ContractService, sample_contract):
    contract_id = service.register_contract(sample_contract).contract.id

    result = service.update_uniform_amount(contract_id, Decimal("2000"))

    assert result.ok
    assert regular_sum(service.get_contract(contract_id)) == Decimal("9000.00")
    assert service.get_contract(contract_id).cuotas[3].monto == Decimal("5000.00")


def test_cascading_date_update(service: ContractService, sample_contract):
    contract_id = service.register_contract(sample_contract).contract.id

    result = service.update_due_date(contract_id, 1, "2025-03-15", propagate=True)

    assert [c.vencimiento for c in result.contract.cuotas] == [
        date(2025, 1, 15),
        date(2025, 3, 15),
        date(2025, 4, 30),
        date(2025, 5, 31),
    ]


def test_mark_paid_then_repeat_is_rejected(service: ContractService, sample_contract):
    contract_id = service.register_contract(sample_contract).contract.id

    first = service.mark_paid(contract_id, 1, date(2025, 3, 10))
    second = service.mark_paid(contract_id, 1, date(2025, 3, 11))

    assert first.ok
    paid = service.get_contract(contract_id).cuotas[1]
    assert paid.estado == EstadoCuota.PAID
    # Due 2025-02-28, frozen against today (2025-06-20): 112 days late
    assert paid.mora == FrozenMora(Decimal("4680.00"))
    assert second.outcome == Outcome.INVALID_INPUT


def test_manual_mora_survives_payment(service: ContractService, sample_contract, today):
    contract_id = service.register_contract(sample_contract).contract.id

    assert service.set_mora(contract_id, 1, Decimal("0")).ok
    service.mark_paid(contract_id, 1)

    paid = service.get_contract(contract_id).cuotas[1]
    assert paid.mora == FrozenMora(Decimal("0"), manual=True)
    assert paid.fecha_pago == today


def test_generate_schedule_only_when_missing(service: ContractService, repository, contract_factory):
    stored = repository.create_contract(contract_factory(lote="99"))
    assert stored.cuotas == []

    result = service.generate_schedule(stored.id)
    again = service.generate_schedule(stored.id)

    assert result.ok
    assert len(result.contract.cuotas) == 4
    assert again.outcome == Outcome.INVALID_INPUT


def test_persistence_failure_is_reported(service: ContractService, sample_contract):
    contract_id = service.register_contract(sample_contract).contract.id

    with patch.object(service.repository, "replace_contract", side_effect=PersistenceError("disk full")):
        result = service.update_single_amount(contract_id, 1, Decimal("10"))

    assert result.outcome == Outcome.PERSISTENCE_FAILURE
    assert not result.ok
    assert result.contract is None
    assert service.get_contract(contract_id).cuotas[1].monto == Decimal("3000.00")


def test_lock_registry_serializes_holders_of_one_key():
    locks = ContractLocks()
    entered = threading.Event()
    release = threading.Event()
    order = []

    def first():
        with locks.hold("a"):
            entered.set()
            release.wait(1)
            order.append("first")

    def second():
        with locks.hold("a"):
            order.append("second")

    t1 = threading.Thread(target=first)
    t1.start()
    entered.wait(1)
    t2 = threading.Thread(target=second)
    t2.start()
    time.sleep(0.05)
    release.set()
    t1.join()
    t2.join()

    assert order == ["first", "second"]


def test_lock_registry_forgets_released_keys(service: ContractService, sample_contract):
    """Locks for finished, deleted or unknown contracts are not retained"""
    contract_id = service.register_contract(sample_contract).contract.id
    service.update_single_amount(contract_id, 1, Decimal("2500"))
    service.delete_contract(contract_id)
    service.update_single_amount("missing", 1, Decimal("10"))

    assert len(service.locks) == 0


def test_concurrent_edits_to_same_contract_do_not_lose_updates(contract_factory, today):
    """Two writers on one contract are serialized; both edits survive"""
    contract = contract_factory(id="c-1", inicial=None, monto_total=Decimal("300"), numero_cuotas=3)
    contract.cuotas = generate_schedule(contract)
    repository = SlowInMemoryRepository(contract)
    service = ContractService(repository, locks=ContractLocks(), today_provider=lambda: today)

    threads = [
        threading.Thread(target=service.update_due_date, args=("c-1", 0, "2025-02-10")),
        threading.Thread(target=service.set_mora, args=("c-1", 1, Decimal("5"))),
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    stored = repository.contracts["c-1"]
    assert stored.cuotas[0].vencimiento == date(2025, 2, 10)
    assert stored.cuotas[1].mora == FrozenMora(Decimal("5"), manual=True)


def test_oversized_amount_is_invalid_input(service: ContractService, sample_contract):
    contract_id = service.register_contract(sample_contract).contract.id

    single = service.update_single_amount(contract_id, 1, Decimal("1e30"))
    uniform = service.update_uniform_amount(contract_id, Decimal("1e30"))
    mora = service.set_mora(contract_id, 1, Decimal("1e30"))

    assert [r.outcome for r in (single, uniform, mora)] == [Outcome.INVALID_INPUT] * 3
    assert service.get_contract(contract_id).cuotas[1].monto == Decimal("3000.00")


def test_register_oversized_price_is_invalid_input(service: ContractService, contract_factory):
    result = service.register_contract(contract_factory(monto_total=Decimal("1e30"), inicial=None))

    assert result.outcome == Outcome.INVALID_INPUT
    assert service.list_contracts("owner-1") == []


def failing_commit():
    return OperationalError("COMMIT", {}, Exception("database is locked"))


def test_failed_commit_on_edit_is_rolled_back(service: ContractService, sample_contract):
    contract_id = service.register_contract(sample_contract).contract.id

    with patch.object(service.repository.db, "commit", side_effect=failing_commit()):
        result = service.update_single_amount(contract_id, 1, Decimal("10"))

    assert result.outcome == Outcome.PERSISTENCE_FAILURE
    assert result.contract is None
    stored = service.get_contract(contract_id)
    assert [c.monto for c in stored.cuotas[1:]] == [Decimal("3000.00")] * 3


def test_failed_commit_on_register_stores_nothing(service: ContractService, sample_contract):
    with patch.object(service.repository.db, "commit", side_effect=failing_commit()):
        result = service.register_contract(sample_contract)

    assert result.outcome == Outcome.PERSISTENCE_FAILURE
    assert service.list_contracts("owner-1") == []


def test_failed_commit_on_delete_keeps_contract(service: ContractService, sample_contract):
    contract_id = service.register_contract(sample_contract).contract.id

    with patch.object(service.repository.db, "commit", side_effect=failing_commit()):
        result = service.delete_contract(contract_id)

    assert result.outcome == Outcome.PERSISTENCE_FAILURE
    assert service.get_contract(contract_id) is not None
