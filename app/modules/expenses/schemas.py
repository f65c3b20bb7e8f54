from pydantic import BaseModel, Field
from decimal import Decimal
from typing import Optional, List
from uuid import UUID
import datetime as dt


class ExpenseCategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None


class ExpenseCategoryUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None


class ExpenseCategoryOut(BaseModel):
    id: UUID
    name: str
    description: Optional[str] = None

    class Config:
        from_attributes = True


class ExpenseCreate(BaseModel):
    description: str = Field(..., min_length=1)
    amount: Decimal = Field(..., ge=0, decimal_places=2)
    date: dt.date = Field(default_factory=dt.date.today)
    category_id: Optional[UUID] = None


class ExpenseUpdate(BaseModel):
    description: Optional[str] = Field(None, min_length=1)
    amount: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    date: Optional[dt.date] = None
    category_id: Optional[UUID] = None


class ExpenseOut(BaseModel):
    id: UUID
    description: str
    amount: Decimal
    date: dt.date
    category_id: Optional[UUID] = None
    category: Optional[ExpenseCategoryOut] = None
    created_at: dt.datetime

    class Config:
        from_attributes = True


class ExpenseList(BaseModel):
    items: List[ExpenseOut]
    total: int
    limit: int
    offset: int
    total_amount: Decimal
