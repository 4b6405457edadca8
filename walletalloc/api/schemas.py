from pydantic import BaseModel
from typing import Any, List, Optional

class ImportRequest(BaseModel):
    path: Optional[str] = None

class ImportResponse(BaseModel):
    imported: int

class HistoryResponse(BaseModel):
    level: str
    rows: List[Any]

class WalletAllocationCreate(BaseModel):
    symbol: str
    group_name: Optional[str] = None
    barca: Optional[str] = None
    target_percent: Optional[float] = None
    current_quantity: Optional[float] = None
    last_price: Optional[float] = None
    notes: Optional[str] = None

class HealthResponse(BaseModel):
    ok: bool
    db: str
    wallet_allocations: int
    last_snapshot: Optional[str] = None
