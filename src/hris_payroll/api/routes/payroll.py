"""Payroll computation and entry workflow endpoints."""

from uuid import UUID

from fastapi import APIRouter, HTTPException, status

from hris_payroll.api.dependencies import ActorId, Payroll
from hris_payroll.api.schemas import (
    BatchSummaryResponse,
    ComputePeriodRequest,
    ComputeResultResponse,
    ErrorResponse,
    PayrollEntryDetailResponse,
    PayrollEntryResponse,
    PeriodTotalsResponse,
    PreviewResponse,
    TransitionRequest,
)
from hris_payroll.services import (
    EmployeeNotFoundError,
    EntryNotFoundError,
    InvalidTransitionError,
    PeriodNotFoundError,
    RecomputeNotAllowedError,
    StaleBalanceError,
)

router = APIRouter(tags=["payroll"])

NOT_FOUND_ERRORS = (PeriodNotFoundError, EmployeeNotFoundError, EntryNotFoundError)


def _not_found(exc: Exception) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))


def _conflict(exc: Exception) -> HTTPException:
    return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))


# ============================================================================
# Periods
# ============================================================================


@router.get(
    "/periods/{period_id}/employees/{employee_id}/preview",
    response_model=PreviewResponse,
    responses={404: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
async def preview_employee(
    service: Payroll,
    period_id: UUID,
    employee_id: UUID,
) -> PreviewResponse:
    """Compute one employee's payroll without persisting anything."""
    try:
        computation = await service.preview(period_id, employee_id)
    except NOT_FOUND_ERRORS as e:
        raise _not_found(e)
    return PreviewResponse.from_computation(computation)


@router.post(
    "/periods/{period_id}/compute",
    response_model=BatchSummaryResponse,
    responses={404: {"model": ErrorResponse}},
)
async def compute_period(
    service: Payroll,
    actor_id: ActorId,
    period_id: UUID,
    payload: ComputePeriodRequest,
) -> BatchSummaryResponse:
    """Compute every active employee of a period and refresh its totals."""
    try:
        summary = await service.compute_for_period(
            period_id,
            actor_id=actor_id,
            employee_ids=payload.employee_ids,
            force_recompute=payload.force_recompute,
        )
    except PeriodNotFoundError as e:
        raise _not_found(e)
    return BatchSummaryResponse.model_validate(summary)


@router.get(
    "/periods/{period_id}/totals",
    response_model=PeriodTotalsResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_period_totals(service: Payroll, period_id: UUID) -> PeriodTotalsResponse:
    """Get the last re-aggregated totals of a period."""
    try:
        period = await service.get_period(period_id)
    except PeriodNotFoundError as e:
        raise _not_found(e)
    return PeriodTotalsResponse.from_period(period)


# ============================================================================
# Entries
# ============================================================================


@router.get(
    "/entries/{entry_id}",
    response_model=PayrollEntryDetailResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_entry(service: Payroll, entry_id: UUID) -> PayrollEntryDetailResponse:
    """Get a payroll entry with its ordered earning and deduction lines."""
    try:
        entry = await service.get_entry(entry_id)
    except EntryNotFoundError as e:
        raise _not_found(e)
    return PayrollEntryDetailResponse.model_validate(entry)


@router.post(
    "/entries/{entry_id}/recompute",
    response_model=ComputeResultResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
async def recompute_entry(
    service: Payroll,
    actor_id: ActorId,
    entry_id: UUID,
) -> ComputeResultResponse:
    """Recompute an entry that is still in draft, computed or reviewed."""
    try:
        result = await service.recompute(entry_id, actor_id=actor_id)
    except NOT_FOUND_ERRORS as e:
        raise _not_found(e)
    except (RecomputeNotAllowedError, StaleBalanceError) as e:
        raise _conflict(e)
    return ComputeResultResponse.from_result(result)


@router.post(
    "/entries/{entry_id}/transition",
    response_model=PayrollEntryResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def transition_entry(
    service: Payroll,
    actor_id: ActorId,
    entry_id: UUID,
    payload: TransitionRequest,
) -> PayrollEntryResponse:
    """Move an entry to its next workflow status."""
    try:
        entry = await service.transition_entry(entry_id, payload.to_status, actor_id=actor_id)
    except EntryNotFoundError as e:
        raise _not_found(e)
    except InvalidTransitionError as e:
        raise _conflict(e)
    return PayrollEntryResponse.model_validate(entry)
