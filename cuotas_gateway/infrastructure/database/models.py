"""SQLAlchemy ORM models - one row per contract aggregate"""

import uuid
from sqlalchemy import Column, String, Numeric, DateTime, Date, Integer, Text, JSON
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()


class ContractRecord(Base):
    """Installment-sale contract; its cuotas live in a JSON document column"""

    __tablename__ = "contract"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    owner_id = Column(Text, nullable=False, index=True)

    nombre1 = Column(Text, nullable=False)
    dni1 = Column(Text, nullable=False)
    celular1 = Column(Text, nullable=True)
    email1 = Column(Text, nullable=True)
    nombre2 = Column(Text, nullable=True)
    dni2 = Column(Text, nullable=True)
    celular2 = Column(Text, nullable=True)
    email2 = Column(Text, nullable=True)

    manzana = Column(Text, nullable=False)
    lote = Column(Text, nullable=False)
    metraje = Column(Numeric(12, 2), nullable=False)

    monto_total = Column(Numeric(14, 2), nullable=False)
    forma_pago = Column(Text, nullable=False)
    inicial = Column(Numeric(14, 2), nullable=True)
    numero_cuotas = Column(Integer, nullable=True)
    fecha_registro = Column(Date, nullable=False)

    # Whole installment list, replaced in a single write
    cuotas = Column(JSON, nullable=False, default=list)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=func.now())
