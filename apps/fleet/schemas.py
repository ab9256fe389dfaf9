from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from ninja import Schema
from pydantic import Field

from apps.core.schemas import RequestSchema
from .models import DumpsterStatus


class DumpsterTypeOut(Schema):
    id: UUID
    organization_id: UUID
    name: str
    size_yards: int
    capacity_description: Optional[str] = None
    daily_rate: Decimal
    weekly_rate: Decimal
    weight_limit_tons: Decimal
    overage_fee_per_ton: Decimal
    image_url: Optional[str] = None
    is_active: bool
    created_at: datetime


class DumpsterTypeIn(RequestSchema):
    name: str = Field(min_length=1)
    size_yards: int = Field(gt=0)
    capacity_description: Optional[str] = None
    daily_rate: Decimal = Field(ge=0, decimal_places=2)
    weekly_rate: Decimal = Field(ge=0, decimal_places=2)
    weight_limit_tons: Decimal = Field(ge=0, decimal_places=2)
    overage_fee_per_ton: Decimal = Field(default=Decimal('0'), ge=0, decimal_places=2)
    image_url: Optional[str] = None
    is_active: bool = True


class DumpsterTypeUpdate(RequestSchema):
    name: Optional[str] = Field(default=None, min_length=1)
    size_yards: Optional[int] = Field(default=None, gt=0)
    capacity_description: Optional[str] = None
    daily_rate: Optional[Decimal] = Field(default=None, ge=0, decimal_places=2)
    weekly_rate: Optional[Decimal] = Field(default=None, ge=0, decimal_places=2)
    weight_limit_tons: Optional[Decimal] = Field(default=None, ge=0, decimal_places=2)
    overage_fee_per_ton: Optional[Decimal] = Field(default=None, ge=0, decimal_places=2)
    image_url: Optional[str] = None
    is_active: Optional[bool] = None


class InventoryOut(Schema):
    id: UUID
    organization_id: UUID
    dumpster_type_id: UUID
    unit_number: str
    status: str
    current_location: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class InventoryIn(RequestSchema):
    dumpster_type_id: UUID
    unit_number: str = Field(min_length=1)
    status: DumpsterStatus = DumpsterStatus.AVAILABLE
    current_location: Optional[str] = None
    notes: Optional[str] = None


class InventoryUpdate(RequestSchema):
    unit_number: Optional[str] = Field(default=None, min_length=1)
    status: Optional[DumpsterStatus] = None
    current_location: Optional[str] = None
    notes: Optional[str] = None
