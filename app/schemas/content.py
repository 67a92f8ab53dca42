from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class BannerOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    subtitle: str
    button_text: str
    background_color: str
    is_active: bool


class BannerCreate(BaseModel):
    title: str = Field(min_length=1, max_length=160)
    subtitle: str = ""
    button_text: str = ""
    background_color: str = Field(default="#f97316", pattern=r"^#[0-9A-Fa-f]{6}$")
    is_active: bool = False


class BannerUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=160)
    subtitle: Optional[str] = None
    button_text: Optional[str] = None
    background_color: Optional[str] = Field(default=None, pattern=r"^#[0-9A-Fa-f]{6}$")
    is_active: Optional[bool] = None


class PublicGatewayOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    type: str
