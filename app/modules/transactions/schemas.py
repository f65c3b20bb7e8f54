from pydantic import BaseModel
from decimal import Decimal
from typing import Optional, List
from uuid import UUID
import datetime as dt

from app.modules.parties.schemas import PartySummary


class TransactionOut(BaseModel):
    id: UUID
    doc_model: str
    doc_id: UUID
    party_id: UUID
    party: Optional[PartySummary] = None
    num: str
    date: dt.date
    fy_start: dt.date
    fy_end: dt.date
    total: Decimal
    total_tax: Decimal
    created_at: dt.datetime

    class Config:
        from_attributes = True


class TransactionList(BaseModel):
    items: List[TransactionOut]
    total: int
    limit: int
    offset: int


class DocModelSummary(BaseModel):
    doc_model: str
    count: int
    total: Decimal
    total_tax: Decimal


class TransactionSummary(BaseModel):
    fy_start: dt.date
    fy_end: dt.date
    by_doc_model: List[DocModelSummary]
