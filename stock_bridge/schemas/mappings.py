"""Schemas for warehouse -> location mappings."""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class MappingCreate(BaseModel):
    """Payload for creating or replacing a mapping."""
    tiny_deposito_id: str = Field(..., description="Tiny deposit id")
    tiny_deposito_nome: Optional[str] = None
    shopify_location_id: str = Field(..., description="Numeric id or Location gid")
    shopify_location_name: Optional[str] = None
    active: bool = True

    @field_validator("tiny_deposito_id", "shopify_location_id", mode="before")
    @classmethod
    def coerce_id(cls, v):
        # Tiny and the UI send ids as numbers as often as strings
        if v is None:
            return ""
        return str(v).strip()


class MappingResponse(BaseModel):
    id: int
    tiny_deposito_id: str
    tiny_deposito_nome: Optional[str] = None
    shopify_location_id: str
    shopify_location_name: Optional[str] = None
    active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
