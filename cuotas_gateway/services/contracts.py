"""Contract service - read-modify-write of contract aggregates.

Each mutation loads the full contract, runs one pure transform over its cuota
list and writes the whole aggregate back. Writes to the same contract are
serialized through a per-contract lock; failures come back as a
MutationResult instead of exceptions so a rejected write cannot be mistaken
for a committed one.
"""

import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from datetime import date
from enum import Enum
from typing import Callable, Dict, Iterator, List, Optional

from cuotas_gateway.config import settings
from cuotas_gateway.domain.exceptions import (
    ContractNotFoundError,
    DuplicateParcelError,
    InvalidInputError,
    PersistenceError,
)
from cuotas_gateway.domain.installments import generate_schedule, schedule_warnings
from cuotas_gateway.domain.models import Contract, Installment
from cuotas_gateway.domain.payments import mark_paid
from cuotas_gateway.domain.redistribution import (
    apply_cascading_date,
    apply_single_amount,
    apply_single_date,
    apply_uniform_amount,
    set_manual_mora,
)
from cuotas_gateway.domain.status import filter_contracts
from cuotas_gateway.infrastructure.database.repositories import ContractRepository
from cuotas_gateway.infrastructure.observability.logging import log_mutation
from cuotas_gateway.infrastructure.observability.metrics import contracts_registered_counter, record_mutation
from cuotas_gateway.utils.date_utils import DateLike, local_today


class Outcome(str, Enum):
    COMMITTED = "committed"
    INVALID_INPUT = "invalid_input"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    PERSISTENCE_FAILURE = "persistence_failure"


@dataclass
class MutationResult:
    """What happened to a requested change; contract is set only when committed"""

    outcome: Outcome
    contract: Optional[Contract] = None
    message: Optional[str] = None
    warnings: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.outcome == Outcome.COMMITTED


class ContractLocks:
    """
    Process-wide registry of one lock per contract id.

    A key stays registered only while some caller holds or waits on its lock,
    so deleted contracts and one-off parcel keys do not accumulate.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[str, threading.Lock] = {}
        self._users: Dict[str, int] = {}

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        with self._guard:
            lock = self._locks.setdefault(key, threading.Lock())
            self._users[key] = self._users.get(key, 0) + 1
        try:
            with lock:
                yield
        finally:
            with self._guard:
                self._users[key] -= 1
                if not self._users[key]:
                    del self._users[key]
                    del self._locks[key]

    def __len__(self) -> int:
        return len(self._locks)


contract_locks = ContractLocks()

CuotaTransform = Callable[[Contract], List[Installment]]


class ContractService:
    """Entry point for every contract read and mutation"""

    def __init__(
        self,
        repository: ContractRepository,
        locks: ContractLocks = contract_locks,
        today_provider: Callable[[], date] | None = None,
    ):
        self.repository = repository
        self.locks = locks
        self.today_provider = today_provider or (lambda: local_today(settings.business_timezone))

    def today(self) -> date:
        return self.today_provider()

    # Reads

    def get_contract(self, contract_id: str) -> Optional[Contract]:
        return self.repository.get_contract(contract_id)

    def list_contracts(self, owner_id: str, view: str = "all") -> List[Contract]:
        return filter_contracts(self.repository.list_contracts(owner_id), view, self.today())

    # Mutations

    def register_contract(self, contract: Contract) -> MutationResult:
        """Store a new contract together with its generated schedule"""
        start = time.time()
        parcel_key = f"parcel:{contract.owner_id}:{contract.manzana.strip().lower()}:{contract.lote.strip().lower()}"

        with self.locks.hold(parcel_key):
            try:
                if contract.numero_cuotas is not None and contract.numero_cuotas < 0:
                    raise InvalidInputError("numero_cuotas cannot be negative")
                if self.repository.find_by_parcel(contract.owner_id, contract.manzana, contract.lote):
                    raise DuplicateParcelError(
                        f"Manzana {contract.manzana} lote {contract.lote} is already registered"
                    )

                cuotas = generate_schedule(contract)
                saved = self.repository.create_contract(replace(contract, cuotas=cuotas))
                result = MutationResult(Outcome.COMMITTED, saved, warnings=schedule_warnings(contract))
                contracts_registered_counter.labels(forma_pago=contract.forma_pago.value).inc()
            except InvalidInputError as e:
                result = MutationResult(Outcome.INVALID_INPUT, message=str(e))
            except DuplicateParcelError as e:
                result = MutationResult(Outcome.CONFLICT, message=str(e))
            except PersistenceError as e:
                result = MutationResult(Outcome.PERSISTENCE_FAILURE, message=str(e))

        contract_id = result.contract.id if result.contract else None
        self._record("register", contract_id, result, start)
        return result

    def delete_contract(self, contract_id: str) -> MutationResult:
        start = time.time()
        with self.locks.hold(contract_id):
            try:
                if not self.repository.delete_contract(contract_id):
                    raise ContractNotFoundError(f"Contract {contract_id} not found")
                result = MutationResult(Outcome.COMMITTED)
            except ContractNotFoundError as e:
                result = MutationResult(Outcome.NOT_FOUND, message=str(e))
            except PersistenceError as e:
                result = MutationResult(Outcome.PERSISTENCE_FAILURE, message=str(e))

        self._record("delete", contract_id, result, start)
        return result

    def generate_schedule(self, contract_id: str) -> MutationResult:
        """Create the schedule of a contract stored without one"""

        def transform(contract: Contract) -> List[Installment]:
            if contract.cuotas:
                raise InvalidInputError("Contract already has a schedule; edit its cuotas instead")
            return generate_schedule(contract)

        result = self._mutate(contract_id, "generate", transform)
        if result.ok:
            result.warnings = schedule_warnings(result.contract)
        return result

    def update_uniform_amount(self, contract_id: str, amount) -> MutationResult:
        return self._mutate(
            contract_id,
            "uniform_amount",
            lambda contract: apply_uniform_amount(contract.cuotas, amount, contract.financed),
        )

    def update_single_amount(self, contract_id: str, index: int, amount) -> MutationResult:
        return self._mutate(
            contract_id,
            "single_amount",
            lambda contract: apply_single_amount(contract.cuotas, index, amount),
        )

    def update_due_date(
        self,
        contract_id: str,
        index: int,
        new_date: DateLike,
        propagate: bool = False,
    ) -> MutationResult:
        """Re-date one cuota, or anchor it and realign every later cuota"""
        transform = apply_cascading_date if propagate else apply_single_date
        return self._mutate(
            contract_id,
            "cascading_date" if propagate else "single_date",
            lambda contract: transform(contract.cuotas, index, new_date),
        )

    def set_mora(self, contract_id: str, index: int, amount) -> MutationResult:
        return self._mutate(
            contract_id,
            "manual_mora",
            lambda contract: set_manual_mora(contract.cuotas, index, amount),
        )

    def mark_paid(self, contract_id: str, index: int, payment_date: DateLike | None = None) -> MutationResult:
        today = self.today()
        return self._mutate(
            contract_id,
            "mark_paid",
            lambda contract: mark_paid(contract.cuotas, index, payment_date or today, today),
        )

    def _mutate(self, contract_id: str, operation: str, transform: CuotaTransform) -> MutationResult:
        start = time.time()
        with self.locks.hold(contract_id):
            try:
                contract = self.repository.get_contract(contract_id)
                if contract is None:
                    raise ContractNotFoundError(f"Contract {contract_id} not found")

                cuotas = transform(contract)
                saved = self.repository.replace_contract(contract_id, replace(contract, cuotas=cuotas))
                result = MutationResult(Outcome.COMMITTED, saved)
            except InvalidInputError as e:
                result = MutationResult(Outcome.INVALID_INPUT, message=str(e))
            except ContractNotFoundError as e:
                result = MutationResult(Outcome.NOT_FOUND, message=str(e))
            except PersistenceError as e:
                result = MutationResult(Outcome.PERSISTENCE_FAILURE, message=str(e))

        self._record(operation, contract_id, result, start)
        return result

    def _record(self, operation: str, contract_id: str | None, result: MutationResult, start: float) -> None:
        duration_ms = (time.time() - start) * 1000
        record_mutation(operation, result.outcome.value)
        log_mutation(
            contract_id,
            operation,
            result.outcome.value,
            duration_ms,
            detail=result.message,
            warnings=result.warnings,
        )
