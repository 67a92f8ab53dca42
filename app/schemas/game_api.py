from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class GameApiOut(BaseModel):
    id: int
    name: str
    api_url: str
    api_key: Optional[str] = None
    description: Optional[str] = None
    is_active: bool
    last_sync: Optional[datetime] = None
    config: Optional[dict] = None


class GameApiCreate(BaseModel):
    name: str
    api_url: str
    api_key: Optional[str] = None
    description: Optional[str] = None
    is_active: bool = True
    config: Optional[dict] = None


class GameApiUpdate(BaseModel):
    name: Optional[str] = None
    api_url: Optional[str] = None
    api_key: Optional[str] = None
    description: Optional[str] = None
    is_active: Optional[bool] = None
    config: Optional[dict] = None


class GameApiTestOut(BaseModel):
    ok: bool
    status_code: Optional[int] = None
    duration_ms: Optional[float] = None
    message: str


class CategorySyncOut(BaseModel):
    fetched: int
    created: int
    updated: int


class MatchImportOut(BaseModel):
    created: int
    updated: int
    skipped: int


class CategoryToggle(BaseModel):
    is_active: bool
