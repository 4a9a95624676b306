"""Domain models - pure Python dataclasses representing business entities"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import List, Optional, Union


class FormaPago(str, Enum):
    """How the contract price is settled"""

    CONTADO = "contado"  # cash
    CUOTAS = "cuotas"  # installments


class EstadoCuota(str, Enum):
    """Stored installment state; "overdue" is derived at view time"""

    PENDING = "pending"
    PAID = "paid"


@dataclass(frozen=True)
class AutoMora:
    """Late fee derived from the calculator against the current date"""


@dataclass(frozen=True)
class FrozenMora:
    """
    Late fee fixed at a known amount.

    manual=True is an operator override; manual=False is the snapshot
    taken when the installment was paid.
    """

    amount: Decimal
    manual: bool = False


Mora = Union[AutoMora, FrozenMora]


@dataclass
class Installment:
    """Single cuota in a contract's payment schedule"""

    numero: int  # 0 = down payment
    vencimiento: date
    monto: Decimal
    mora: Mora = field(default_factory=AutoMora)
    total: Optional[Decimal] = None
    fecha_pago: Optional[date] = None
    estado: EstadoCuota = EstadoCuota.PENDING
    voucher: List[str] = field(default_factory=list)
    boleta: List[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        if self.total is None:
            self.total = self.monto + stored_mora_amount(self.mora)

    @property
    def is_down_payment(self) -> bool:
        return self.numero == 0

    @property
    def is_paid(self) -> bool:
        return self.estado == EstadoCuota.PAID


@dataclass
class Contract:
    """Installment-sale contract for one parcel (client aggregate)"""

    id: Optional[str]
    owner_id: str
    nombre1: str
    dni1: str
    manzana: str
    lote: str
    metraje: Decimal
    monto_total: Decimal
    forma_pago: FormaPago
    fecha_registro: date
    inicial: Optional[Decimal] = None
    numero_cuotas: Optional[int] = None
    celular1: Optional[str] = None
    email1: Optional[str] = None
    # Co-owner
    nombre2: Optional[str] = None
    dni2: Optional[str] = None
    celular2: Optional[str] = None
    email2: Optional[str] = None
    cuotas: List[Installment] = field(default_factory=list)

    @property
    def down_payment(self) -> Decimal:
        return self.inicial or Decimal("0")

    @property
    def financed(self) -> Decimal:
        """Amount the regular installments must add up to"""
        return self.monto_total - self.down_payment


def stored_mora_amount(mora: Mora) -> Decimal:
    """Mora contribution to the cached total (Auto rows cache monto only)"""
    if isinstance(mora, FrozenMora):
        return mora.amount
    return Decimal("0")
