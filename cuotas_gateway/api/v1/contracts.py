"""/v1/contracts - register, read, list and delete contracts"""

import logging
from datetime import date
from typing import List, Literal

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, Request, Response

from cuotas_gateway.api.dependencies import get_contract_service, get_notifier, get_request_id
from cuotas_gateway.api.v1.schemas import (
    ContractCreateRequest,
    ContractListResponse,
    ContractResponse,
    ContractSummarySchema,
    CuotaSchema,
)
from cuotas_gateway.domain.models import Contract, FormaPago, FrozenMora
from cuotas_gateway.domain.mora import effective_mora
from cuotas_gateway.domain.status import account_totals, contract_status, view_estado
from cuotas_gateway.infrastructure.clients.notifier import ContractEventNotifier
from cuotas_gateway.services.contracts import ContractService, MutationResult, Outcome

router = APIRouter()

_OUTCOME_STATUS = {
    Outcome.INVALID_INPUT: 422,
    Outcome.NOT_FOUND: 404,
    Outcome.CONFLICT: 409,
    Outcome.PERSISTENCE_FAILURE: 503,
}


def raise_for_outcome(result: MutationResult, request_id: str) -> None:
    """Turn a non-committed mutation into the matching HTTP error"""
    if result.ok:
        return
    status_code = _OUTCOME_STATUS[result.outcome]
    logging.warning(f"Mutation rejected: {result.message}", extra={"request_id": request_id})
    if result.outcome == Outcome.PERSISTENCE_FAILURE:
        raise HTTPException(status_code=status_code, detail="Contract storage unavailable; change not applied")
    raise HTTPException(status_code=status_code, detail=result.message)


def build_contract_response(contract: Contract, today: date, warnings: List[str] | None = None) -> ContractResponse:
    """Project a contract for display, evaluating Auto mora for today"""
    cuotas = []
    for index, cuota in enumerate(contract.cuotas):
        mora = effective_mora(cuota, today)
        cuotas.append(
            CuotaSchema(
                index=index,
                numero=cuota.numero,
                vencimiento=cuota.vencimiento,
                monto=cuota.monto,
                mora=mora,
                manual_mora=isinstance(cuota.mora, FrozenMora) and cuota.mora.manual,
                total=cuota.total if cuota.is_paid else cuota.monto + mora,
                fecha_pago=cuota.fecha_pago,
                estado=view_estado(cuota, today),
                voucher=cuota.voucher,
                boleta=cuota.boleta,
            )
        )

    status = contract_status(contract)
    totals = account_totals(contract, today)

    return ContractResponse(
        id=contract.id,
        owner_id=contract.owner_id,
        nombre1=contract.nombre1,
        dni1=contract.dni1,
        celular1=contract.celular1,
        email1=contract.email1,
        nombre2=contract.nombre2,
        dni2=contract.dni2,
        celular2=contract.celular2,
        email2=contract.email2,
        manzana=contract.manzana,
        lote=contract.lote,
        metraje=contract.metraje,
        monto_total=contract.monto_total,
        forma_pago=contract.forma_pago.value,
        inicial=contract.inicial,
        numero_cuotas=contract.numero_cuotas,
        fecha_registro=contract.fecha_registro,
        cuotas=cuotas,
        summary=ContractSummarySchema(
            status=status.label,
            pending_count=status.pending_count,
            paid_count=status.paid_count,
            total_paid=totals.total_paid,
            total_pending=totals.total_pending,
        ),
        warnings=warnings or [],
    )


def schedule_event(
    background_tasks: BackgroundTasks,
    notifier: ContractEventNotifier,
    event: str,
    contract_id: str,
    **fields,
) -> None:
    """Queue a webhook for a committed change"""
    if notifier.enabled:
        background_tasks.add_task(notifier.send_event, {"event": event, "contract_id": contract_id, **fields})


@router.post("/contracts", response_model=ContractResponse, status_code=201)
def create_contract(
    request_body: ContractCreateRequest,
    background_tasks: BackgroundTasks,
    request: Request,
    service: ContractService = Depends(get_contract_service),
    notifier: ContractEventNotifier = Depends(get_notifier),
):
    """
    Register a contract and generate its schedule.

    Flow:
    1. Reject a manzana/lote already registered for the owner
    2. Generate down payment + monthly cuotas
    3. Persist the whole aggregate
    4. Notify subscribers
    """
    today = service.today()
    contract = Contract(
        id=None,
        owner_id=request_body.owner_id,
        nombre1=request_body.nombre1,
        dni1=request_body.dni1,
        celular1=request_body.celular1,
        email1=request_body.email1,
        nombre2=request_body.nombre2,
        dni2=request_body.dni2,
        celular2=request_body.celular2,
        email2=request_body.email2,
        manzana=request_body.manzana,
        lote=request_body.lote,
        metraje=request_body.metraje,
        monto_total=request_body.monto_total,
        forma_pago=FormaPago(request_body.forma_pago),
        inicial=request_body.inicial,
        numero_cuotas=request_body.numero_cuotas,
        fecha_registro=request_body.fecha_registro or today,
    )

    result = service.register_contract(contract)
    raise_for_outcome(result, get_request_id(request))

    schedule_event(background_tasks, notifier, "CONTRACT_REGISTERED", result.contract.id, owner_id=contract.owner_id)
    return build_contract_response(result.contract, today, result.warnings)


@router.get("/contracts", response_model=ContractListResponse)
def list_contracts(
    owner_id: str = Query(..., description="Owner scope"),
    view: Literal["all", "overdue", "due_this_month"] = Query("all"),
    service: ContractService = Depends(get_contract_service),
):
    """List an owner's contracts, optionally only those with overdue or due-this-month cuotas"""
    today = service.today()
    contracts = service.list_contracts(owner_id, view)
    return ContractListResponse(
        owner_id=owner_id,
        view=view,
        contracts=[build_contract_response(c, today) for c in contracts],
    )


@router.get("/contracts/{contract_id}", response_model=ContractResponse)
def get_contract(contract_id: str, service: ContractService = Depends(get_contract_service)):
    contract = service.get_contract(contract_id)
    if not contract:
        raise HTTPException(status_code=404, detail="Contract not found")
    return build_contract_response(contract, service.today())


@router.delete("/contracts/{contract_id}", status_code=204)
def delete_contract(
    contract_id: str,
    background_tasks: BackgroundTasks,
    request: Request,
    service: ContractService = Depends(get_contract_service),
    notifier: ContractEventNotifier = Depends(get_notifier),
):
    """Delete a contract and its cuotas"""
    result = service.delete_contract(contract_id)
    raise_for_outcome(result, get_request_id(request))
    schedule_event(background_tasks, notifier, "CONTRACT_DELETED", contract_id)
    return Response(status_code=204)
