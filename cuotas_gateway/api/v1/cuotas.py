"""/v1/contracts/{id}/cuotas - schedule generation, edits and payments"""

from fastapi import APIRouter, BackgroundTasks, Depends, Request

from cuotas_gateway.api.dependencies import get_contract_service, get_notifier, get_request_id
from cuotas_gateway.api.v1.contracts import build_contract_response, raise_for_outcome, schedule_event
from cuotas_gateway.api.v1.schemas import (
    ContractResponse,
    DueDateRequest,
    MoraRequest,
    PaymentRequest,
    SingleAmountRequest,
    UniformAmountRequest,
)
from cuotas_gateway.infrastructure.clients.notifier import ContractEventNotifier
from cuotas_gateway.services.contracts import ContractService, MutationResult

router = APIRouter()


def _committed_response(
    result: MutationResult,
    operation: str,
    request: Request,
    background_tasks: BackgroundTasks,
    service: ContractService,
    notifier: ContractEventNotifier,
) -> ContractResponse:
    raise_for_outcome(result, get_request_id(request))
    schedule_event(background_tasks, notifier, "CONTRACT_UPDATED", result.contract.id, operation=operation)
    return build_contract_response(result.contract, service.today(), result.warnings)


@router.post("/contracts/{contract_id}/cuotas/generate", response_model=ContractResponse)
def generate_cuotas(
    contract_id: str,
    background_tasks: BackgroundTasks,
    request: Request,
    service: ContractService = Depends(get_contract_service),
    notifier: ContractEventNotifier = Depends(get_notifier),
):
    """Generate the schedule of a contract stored without cuotas"""
    result = service.generate_schedule(contract_id)
    return _committed_response(result, "generate", request, background_tasks, service, notifier)


@router.put("/contracts/{contract_id}/cuotas/amount", response_model=ContractResponse)
def update_uniform_amount(
    contract_id: str,
    request_body: UniformAmountRequest,
    background_tasks: BackgroundTasks,
    request: Request,
    service: ContractService = Depends(get_contract_service),
    notifier: ContractEventNotifier = Depends(get_notifier),
):
    """Change the monthly amount; the last cuota absorbs the balance"""
    result = service.update_uniform_amount(contract_id, request_body.monto)
    return _committed_response(result, "uniform_amount", request, background_tasks, service, notifier)


@router.put("/contracts/{contract_id}/cuotas/{index}/amount", response_model=ContractResponse)
def update_single_amount(
    contract_id: str,
    index: int,
    request_body: SingleAmountRequest,
    background_tasks: BackgroundTasks,
    request: Request,
    service: ContractService = Depends(get_contract_service),
    notifier: ContractEventNotifier = Depends(get_notifier),
):
    """Override one cuota's amount; the difference moves to the last cuota"""
    result = service.update_single_amount(contract_id, index, request_body.monto)
    return _committed_response(result, "single_amount", request, background_tasks, service, notifier)


@router.put("/contracts/{contract_id}/cuotas/{index}/vencimiento", response_model=ContractResponse)
def update_due_date(
    contract_id: str,
    index: int,
    request_body: DueDateRequest,
    background_tasks: BackgroundTasks,
    request: Request,
    service: ContractService = Depends(get_contract_service),
    notifier: ContractEventNotifier = Depends(get_notifier),
):
    """Re-date one cuota, or with propagate=true realign all later cuotas to month end"""
    result = service.update_due_date(contract_id, index, request_body.vencimiento, request_body.propagate)
    operation = "cascading_date" if request_body.propagate else "single_date"
    return _committed_response(result, operation, request, background_tasks, service, notifier)


@router.put("/contracts/{contract_id}/cuotas/{index}/mora", response_model=ContractResponse)
def update_mora(
    contract_id: str,
    index: int,
    request_body: MoraRequest,
    background_tasks: BackgroundTasks,
    request: Request,
    service: ContractService = Depends(get_contract_service),
    notifier: ContractEventNotifier = Depends(get_notifier),
):
    """Freeze a manual mora that is never recomputed"""
    result = service.set_mora(contract_id, index, request_body.mora)
    return _committed_response(result, "manual_mora", request, background_tasks, service, notifier)


@router.post("/contracts/{contract_id}/cuotas/{index}/payment", response_model=ContractResponse)
def mark_cuota_paid(
    contract_id: str,
    index: int,
    background_tasks: BackgroundTasks,
    request: Request,
    request_body: PaymentRequest | None = None,
    service: ContractService = Depends(get_contract_service),
    notifier: ContractEventNotifier = Depends(get_notifier),
):
    """Mark a cuota paid, freezing its mora as of today"""
    fecha_pago = request_body.fecha_pago if request_body else None
    result = service.mark_paid(contract_id, index, fecha_pago)
    return _committed_response(result, "mark_paid", request, background_tasks, service, notifier)
