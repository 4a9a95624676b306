"""Dependency injection for FastAPI endpoints"""

from fastapi import Depends, Request
from sqlalchemy.orm import Session
from cuotas_gateway.infrastructure.clients.notifier import ContractEventNotifier
from cuotas_gateway.infrastructure.database.repositories import ContractRepository
from cuotas_gateway.infrastructure.database.session import get_db
from cuotas_gateway.services.contracts import ContractService


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_contract_service(db: Session = Depends(get_db)) -> ContractService:
    """Provide contract service bound to the request's session"""
    return ContractService(ContractRepository(db))


def get_notifier() -> ContractEventNotifier:
    """Provide contract event webhook client instance"""
    return ContractEventNotifier()
