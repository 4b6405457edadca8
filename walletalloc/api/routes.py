from typing import Optional
from fastapi import APIRouter, HTTPException, Query, Request
from fastapi.responses import PlainTextResponse
from pydantic import ValidationError
import structlog
from .schemas import HealthResponse, HistoryResponse, ImportRequest, ImportResponse, WalletAllocationCreate
from ..errors import ConfigError, LedgerImportError, UpstreamError
from ..models import AllocationReport, LedgerEntry
from ..pipeline.export import export_history_csv
from ..pipeline.history import normalize_level

log = structlog.get_logger()

router = APIRouter()

def _service(request: Request):
    return request.app.state.service

@router.get(
    '/health',
    response_model=HealthResponse,
    summary="Health check",
    description="Returns service and DB connectivity plus the last snapshot timestamp.",
    tags=["Health"],
)
def health(request: Request):
    try:
        stats = _service(request).repo.stats()
    except Exception as e:
        raise HTTPException(503, f'db_error: {e}')
    return HealthResponse(ok=True, db='ok', **stats)

@router.get(
    '/allocations',
    response_model=AllocationReport,
    summary="Compute allocations",
    description="Prices the current wallet ledger, computes asset/group/barca deviations and records a snapshot.",
    tags=["Allocations"],
)
def allocations(request: Request):
    try:
        return _service(request).compute_and_record()
    except ConfigError as e:
        raise HTTPException(400, str(e))
    except UpstreamError as e:
        log.error("allocations_upstream_failed", err=str(e))
        raise HTTPException(502, str(e))

@router.get(
    '/history',
    response_model=HistoryResponse,
    summary="Allocation history",
    description="Snapshot rows of one level (assets|groups|barca|totals), optionally bounded by from/to (RFC3339, inclusive).",
    tags=["History"],
)
def history(
    request: Request,
    level: str = Query('assets'),
    from_ts: Optional[str] = Query(None, alias='from'),
    to_ts: Optional[str] = Query(None, alias='to'),
):
    try:
        level = normalize_level(level)
        rows = _service(request).history(level, from_ts, to_ts)
    except ValueError as e:
        raise HTTPException(400, str(e))
    return HistoryResponse(level=level, rows=[r.model_dump() for r in rows])

@router.get(
    '/history/export',
    response_class=PlainTextResponse,
    summary="Export history as CSV",
    tags=["History"],
)
def history_export(
    request: Request,
    level: str = Query('assets'),
    from_ts: Optional[str] = Query(None, alias='from'),
    to_ts: Optional[str] = Query(None, alias='to'),
):
    try:
        text = export_history_csv(_service(request).repo, level, from_ts=from_ts, to_ts=to_ts)
    except ValueError as e:
        raise HTTPException(400, str(e))
    return PlainTextResponse(text, media_type='text/csv')

@router.post(
    '/import_wallets',
    response_model=ImportResponse,
    summary="Import wallet ledger CSV",
    description="Appends every row of the CSV (defaults to WALLET_ALLOCATIONS_PATH). A bad row aborts the whole import.",
    tags=["Wallet"],
)
def import_wallets(request: Request, req: Optional[ImportRequest] = None):
    path = req.path if req else None
    try:
        imported = _service(request).import_wallets(path)
    except LedgerImportError as e:
        raise HTTPException(400, str(e))
    return ImportResponse(imported=imported)

@router.post(
    '/wallet_allocations',
    response_model=LedgerEntry,
    status_code=201,
    summary="Add a ledger row",
    tags=["Wallet"],
)
def add_wallet_allocation(request: Request, req: WalletAllocationCreate):
    try:
        entry = LedgerEntry(**req.model_dump())
    except ValidationError as e:
        raise HTTPException(422, e.errors(include_url=False))
    return _service(request).add_wallet_allocation(entry)

@router.get(
    '/wallet_allocations/{symbol}/history',
    response_model=list[LedgerEntry],
    summary="Ledger rows for a symbol",
    description="All ledger rows recorded for the symbol, newest first.",
    tags=["Wallet"],
)
def wallet_allocation_history(request: Request, symbol: str):
    return _service(request).wallet_allocation_history(symbol)
