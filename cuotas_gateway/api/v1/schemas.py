"""Pydantic schemas for API request/response validation"""

from datetime import date
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, model_validator


class ContractCreateRequest(BaseModel):
    """Request body for POST /v1/contracts"""

    owner_id: str = Field(..., min_length=1, description="Owner scope of the contract")
    nombre1: str = Field(..., min_length=1)
    dni1: str = Field(..., min_length=1)
    celular1: Optional[str] = None
    email1: Optional[str] = None
    nombre2: Optional[str] = None
    dni2: Optional[str] = None
    celular2: Optional[str] = None
    email2: Optional[str] = None
    manzana: str = Field(..., min_length=1, description="Block identifier")
    lote: str = Field(..., min_length=1, description="Parcel identifier")
    metraje: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2, description="Parcel area")
    monto_total: Decimal = Field(..., gt=0, max_digits=14, decimal_places=2, description="Contract price")
    forma_pago: Literal["contado", "cuotas"]
    inicial: Optional[Decimal] = Field(None, ge=0, max_digits=14, decimal_places=2, description="Down payment")
    numero_cuotas: Optional[int] = Field(None, ge=0, description="Number of monthly installments")
    fecha_registro: Optional[date] = Field(None, description="Contract date (default: today)")

    @model_validator(mode="after")
    def check_down_payment(self):
        if self.inicial is not None and self.inicial > self.monto_total:
            raise ValueError("inicial cannot exceed monto_total")
        return self


class UniformAmountRequest(BaseModel):
    """Request body for PUT /v1/contracts/{id}/cuotas/amount"""

    monto: Decimal = Field(..., ge=0, max_digits=14, decimal_places=2, description="New amount for every regular cuota but the last")


class SingleAmountRequest(BaseModel):
    """Request body for PUT /v1/contracts/{id}/cuotas/{index}/amount"""

    monto: Decimal = Field(..., ge=0, max_digits=14, decimal_places=2)


class DueDateRequest(BaseModel):
    """Request body for PUT /v1/contracts/{id}/cuotas/{index}/vencimiento"""

    vencimiento: date
    propagate: bool = Field(False, description="Realign every later cuota to month end")


class MoraRequest(BaseModel):
    """Request body for PUT /v1/contracts/{id}/cuotas/{index}/mora"""

    mora: Decimal = Field(..., ge=0, max_digits=14, decimal_places=2)


class PaymentRequest(BaseModel):
    """Request body for POST /v1/contracts/{id}/cuotas/{index}/payment"""

    fecha_pago: Optional[date] = Field(None, description="Payment date (default: today)")


class CuotaSchema(BaseModel):
    """Single cuota with mora evaluated for today"""

    index: int
    numero: int
    vencimiento: date
    monto: Decimal
    mora: Decimal
    manual_mora: bool
    total: Decimal
    fecha_pago: Optional[date] = None
    estado: str  # pending | paid | overdue
    voucher: List[str] = []
    boleta: List[str] = []


class ContractSummarySchema(BaseModel):
    status: str  # no_schedule | completed | owes
    pending_count: int
    paid_count: int
    total_paid: Decimal
    total_pending: Decimal


class ContractResponse(BaseModel):
    """Response for contract endpoints"""

    id: str
    owner_id: str
    nombre1: str
    dni1: str
    celular1: Optional[str] = None
    email1: Optional[str] = None
    nombre2: Optional[str] = None
    dni2: Optional[str] = None
    celular2: Optional[str] = None
    email2: Optional[str] = None
    manzana: str
    lote: str
    metraje: Decimal
    monto_total: Decimal
    forma_pago: str
    inicial: Optional[Decimal] = None
    numero_cuotas: Optional[int] = None
    fecha_registro: date
    cuotas: List[CuotaSchema]
    summary: ContractSummarySchema
    warnings: List[str] = []


class ContractListResponse(BaseModel):
    """Response for GET /v1/contracts"""

    owner_id: str
    view: str
    contracts: List[ContractResponse]
