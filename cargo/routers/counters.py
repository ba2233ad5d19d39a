from fastapi import APIRouter, Depends, Query

from cargo.api import deps
from cargo.core.errors import CargoError
from cargo.schemas.counter import CounterPreview, CounterReset, CounterResetResponse, CounterSnapshotResponse
from cargo.services.counter import GLOBAL_KEY, SequenceCounterService, resolve_counter

router = APIRouter()


@router.get("", response_model=CounterSnapshotResponse)
async def counter_snapshot(
    counters: SequenceCounterService = Depends(deps.get_counter_service),
) -> CounterSnapshotResponse:
    return CounterSnapshotResponse(counters=await counters.snapshot())


@router.get("/{family}/next", response_model=CounterPreview)
async def peek_next_number(
    family: str,
    key: str = Query(GLOBAL_KEY),
    counters: SequenceCounterService = Depends(deps.get_counter_service),
) -> CounterPreview:
    """Preview only. The number is not reserved."""
    try:
        resolve_counter(family, key)
        next_number = await counters.peek_next(family, key)
    except CargoError as exc:
        raise deps.http_error(exc)
    return CounterPreview(family=family, key=key, next_number=next_number)


@router.post("/{family}/issue", response_model=CounterPreview)
async def issue_next_number(
    family: str,
    key: str = Query(GLOBAL_KEY),
    counters: SequenceCounterService = Depends(deps.get_counter_service),
) -> CounterPreview:
    try:
        number = await counters.issue_next(family, key)
    except CargoError as exc:
        raise deps.http_error(exc)
    return CounterPreview(family=family, key=key, next_number=number)


@router.put("/{family}/reset", response_model=CounterResetResponse)
async def reset_counter(
    family: str,
    payload: CounterReset,
    key: str = Query(GLOBAL_KEY),
    counters: SequenceCounterService = Depends(deps.get_counter_service),
) -> CounterResetResponse:
    try:
        return await counters.reset_to(family, key, payload.value)
    except CargoError as exc:
        raise deps.http_error(exc)
