from sqlalchemy.orm import Session, joinedload
from sqlalchemy import func
from decimal import Decimal
from typing import Optional
from uuid import UUID
from datetime import date

from app.modules.billing.models import DocumentKind
from app.modules.organizations import service as organization_service
from app.modules.transactions.models import Transaction
from app.modules.transactions.schemas import TransactionList, TransactionSummary, DocModelSummary


class TransactionService:
    """Consultas sobre el libro de transacciones (solo lectura)"""

    def __init__(self, db: Session):
        self.db = db

    def list_transactions(
        self,
        org_id: UUID,
        limit: int = 100,
        offset: int = 0,
        doc_model: Optional[DocumentKind] = None,
        party_id: Optional[UUID] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None
    ) -> TransactionList:
        query = self.db.query(Transaction).filter(Transaction.org_id == org_id)

        if doc_model:
            query = query.filter(Transaction.doc_model == doc_model.value)
        if party_id:
            query = query.filter(Transaction.party_id == party_id)
        if date_from:
            query = query.filter(Transaction.date >= date_from)
        if date_to:
            query = query.filter(Transaction.date <= date_to)

        total = query.count()
        transactions = query.options(joinedload(Transaction.party)).order_by(
            Transaction.date.desc(), Transaction.created_at.desc()
        ).offset(offset).limit(limit).all()

        return TransactionList(items=transactions, total=total, limit=limit, offset=offset)

    def summary(self, org_id: UUID) -> TransactionSummary:
        """Totales por tipo de documento en el año fiscal actual"""
        financial_year = organization_service.get_financial_year(self.db, org_id)

        rows = self.db.query(
            Transaction.doc_model,
            func.count(Transaction.id),
            func.coalesce(func.sum(Transaction.total), 0),
            func.coalesce(func.sum(Transaction.total_tax), 0)
        ).filter(
            Transaction.org_id == org_id,
            Transaction.fy_start == financial_year.start,
            Transaction.fy_end == financial_year.end
        ).group_by(Transaction.doc_model).all()

        found = {doc_model: (count, total, tax) for doc_model, count, total, tax in rows}
        by_doc_model = []
        for kind in DocumentKind:
            count, total, tax = found.get(kind.value, (0, 0, 0))
            by_doc_model.append(DocModelSummary(
                doc_model=kind.value,
                count=count,
                total=Decimal(str(total)),
                total_tax=Decimal(str(tax))
            ))

        return TransactionSummary(fy_start=financial_year.start, fy_end=financial_year.end, by_doc_model=by_doc_model)
