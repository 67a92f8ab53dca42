from typing import Optional

from pydantic import BaseModel


class GatewayOut(BaseModel):
    id: int
    name: str
    type: str
    api_key: Optional[str] = None
    secret_key: Optional[str] = None
    webhook_url: Optional[str] = None
    is_active: bool
    is_test_mode: bool
    config: Optional[dict] = None


class GatewayCreate(BaseModel):
    name: str
    type: str
    api_key: Optional[str] = None
    secret_key: Optional[str] = None
    webhook_url: Optional[str] = None
    is_active: bool = False
    is_test_mode: bool = True
    config: Optional[dict] = None


class GatewayUpdate(BaseModel):
    name: Optional[str] = None
    type: Optional[str] = None
    api_key: Optional[str] = None
    secret_key: Optional[str] = None
    webhook_url: Optional[str] = None
    is_active: Optional[bool] = None
    is_test_mode: Optional[bool] = None
    config: Optional[dict] = None
