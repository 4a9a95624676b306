"""Data access layer for contract aggregates"""

from decimal import Decimal
from typing import Any, Dict, List, Optional
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from cuotas_gateway.infrastructure.database.models import ContractRecord
from cuotas_gateway.domain.exceptions import PersistenceError
from cuotas_gateway.domain.models import (
    AutoMora,
    Contract,
    EstadoCuota,
    FormaPago,
    FrozenMora,
    Installment,
)
from cuotas_gateway.utils.date_utils import parse_local_date

# Older documents were written with the Spanish state names
_ESTADO_ALIASES = {
    "pending": EstadoCuota.PENDING,
    "pendiente": EstadoCuota.PENDING,
    "vencido": EstadoCuota.PENDING,
    "overdue": EstadoCuota.PENDING,
    "paid": EstadoCuota.PAID,
    "pagado": EstadoCuota.PAID,
}


def _as_list(value: Any) -> List[str]:
    if not value:
        return []
    if isinstance(value, str):
        return [value]
    return list(value)


def cuota_to_document(cuota: Installment) -> Dict[str, Any]:
    """Serialize an installment to the persisted camelCase shape"""
    doc: Dict[str, Any] = {
        "numero": cuota.numero,
        "vencimiento": cuota.vencimiento.isoformat(),
        "monto": str(cuota.monto),
        "total": str(cuota.total),
        "estado": cuota.estado.value,
    }
    if isinstance(cuota.mora, FrozenMora):
        doc["mora"] = str(cuota.mora.amount)
        if cuota.mora.manual:
            doc["manualMora"] = True
    if cuota.fecha_pago is not None:
        doc["fechaPago"] = cuota.fecha_pago.isoformat()
    if cuota.voucher:
        doc["voucher"] = list(cuota.voucher)
    if cuota.boleta:
        doc["boleta"] = list(cuota.boleta)
    return doc


def cuota_from_document(doc: Dict[str, Any]) -> Installment:
    """
    Load an installment document.

    A stored mora is only trusted when it is a manual override or the
    snapshot of a paid row; any other stored value is recomputed on read.
    The down payment always loads with mora frozen at 0.
    """
    estado = _ESTADO_ALIASES.get(str(doc.get("estado", "pending")).lower(), EstadoCuota.PENDING)
    monto = Decimal(str(doc["monto"]))

    numero = int(doc["numero"])
    raw_mora = doc.get("mora")
    if numero == 0:
        mora = FrozenMora(amount=Decimal("0.00"))
    elif raw_mora is not None and doc.get("manualMora") is True:
        mora = FrozenMora(amount=Decimal(str(raw_mora)), manual=True)
    elif raw_mora is not None and estado == EstadoCuota.PAID:
        mora = FrozenMora(amount=Decimal(str(raw_mora)))
    else:
        mora = AutoMora()

    fecha_pago = doc.get("fechaPago")
    return Installment(
        numero=numero,
        vencimiento=parse_local_date(doc["vencimiento"]),
        monto=monto,
        mora=mora,
        total=Decimal(str(doc["total"])) if doc.get("total") is not None else None,
        fecha_pago=parse_local_date(fecha_pago) if fecha_pago else None,
        estado=estado,
        voucher=_as_list(doc.get("voucher")),
        boleta=_as_list(doc.get("boleta")),
    )


def _to_domain(record: ContractRecord) -> Contract:
    return Contract(
        id=record.id,
        owner_id=record.owner_id,
        nombre1=record.nombre1,
        dni1=record.dni1,
        celular1=record.celular1,
        email1=record.email1,
        nombre2=record.nombre2,
        dni2=record.dni2,
        celular2=record.celular2,
        email2=record.email2,
        manzana=record.manzana,
        lote=record.lote,
        metraje=Decimal(str(record.metraje)),
        monto_total=Decimal(str(record.monto_total)),
        forma_pago=FormaPago(record.forma_pago),
        inicial=Decimal(str(record.inicial)) if record.inicial is not None else None,
        numero_cuotas=record.numero_cuotas,
        fecha_registro=record.fecha_registro,
        cuotas=[cuota_from_document(doc) for doc in (record.cuotas or [])],
    )


def _apply_to_record(record: ContractRecord, contract: Contract) -> None:
    record.owner_id = contract.owner_id
    record.nombre1 = contract.nombre1
    record.dni1 = contract.dni1
    record.celular1 = contract.celular1
    record.email1 = contract.email1
    record.nombre2 = contract.nombre2
    record.dni2 = contract.dni2
    record.celular2 = contract.celular2
    record.email2 = contract.email2
    record.manzana = contract.manzana
    record.lote = contract.lote
    record.metraje = contract.metraje
    record.monto_total = contract.monto_total
    record.forma_pago = contract.forma_pago.value
    record.inicial = contract.inicial
    record.numero_cuotas = contract.numero_cuotas
    record.fecha_registro = contract.fecha_registro
    # New list object so the JSON column is flagged dirty
    record.cuotas = [cuota_to_document(c) for c in contract.cuotas]


def _normalize_parcel(value: str) -> str:
    return (value or "").strip().lower()


class ContractRepository:
    """Repository for contract aggregates; every write replaces the whole aggregate"""

    def __init__(self, db: Session):
        self.db = db

    def get_contract(self, contract_id: str) -> Optional[Contract]:
        """Fetch one contract with its cuotas"""
        record = self._get_record(contract_id)
        return _to_domain(record) if record else None

    def list_contracts(self, owner_id: str) -> List[Contract]:
        """Contracts in an owner's scope, most recently registered first"""
        records = (
            self.db.query(ContractRecord)
            .filter(ContractRecord.owner_id == owner_id)
            .order_by(ContractRecord.fecha_registro.desc(), ContractRecord.created_at.desc())
            .all()
        )
        return [_to_domain(r) for r in records]

    def find_by_parcel(self, owner_id: str, manzana: str, lote: str) -> Optional[Contract]:
        """Match manzana/lote ignoring case and surrounding whitespace"""
        wanted = (_normalize_parcel(manzana), _normalize_parcel(lote))
        for record in self.db.query(ContractRecord).filter(ContractRecord.owner_id == owner_id):
            if (_normalize_parcel(record.manzana), _normalize_parcel(record.lote)) == wanted:
                return _to_domain(record)
        return None

    def create_contract(self, contract: Contract) -> Contract:
        """Persist a new contract and return it with its assigned id"""
        record = ContractRecord()
        if contract.id:
            record.id = contract.id
        _apply_to_record(record, contract)
        self.db.add(record)
        self._commit("create")
        return _to_domain(record)

    def replace_contract(self, contract_id: str, contract: Contract) -> Contract:
        """
        Overwrite the stored aggregate in one write.

        Raises:
            PersistenceError: The contract vanished or the commit failed
        """
        record = self._get_record(contract_id)
        if record is None:
            raise PersistenceError(f"Contract {contract_id} no longer exists")
        _apply_to_record(record, contract)
        self._commit("replace")
        return _to_domain(record)

    def delete_contract(self, contract_id: str) -> bool:
        """Delete a contract and its cuotas; False when it does not exist"""
        record = self._get_record(contract_id)
        if record is None:
            return False
        self.db.delete(record)
        self._commit("delete")
        return True

    def _get_record(self, contract_id: str) -> Optional[ContractRecord]:
        try:
            return self.db.query(ContractRecord).filter(ContractRecord.id == contract_id).first()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to read contract {contract_id}: {e}") from e

    def _commit(self, action: str) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceError(f"Contract {action} failed: {e}") from e
