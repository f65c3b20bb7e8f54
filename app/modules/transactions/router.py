from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional
from uuid import UUID
from datetime import date

from app.database.database import get_db
from app.modules.auth.dependencies import AuthDependencies
from app.modules.auth.schemas import AuthContext, ALL_ROLES
from app.modules.billing.models import DocumentKind
from app.modules.transactions.service import TransactionService
from app.modules.transactions.schemas import TransactionList, TransactionSummary

transactions_router = APIRouter(prefix="/transactions", tags=["Transactions"])


@transactions_router.get("/", response_model=TransactionList)
def list_transactions(
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    doc_model: Optional[DocumentKind] = Query(None, description="invoice, purchase, purchase_order o quote"),
    party_id: Optional[UUID] = Query(None),
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_role(ALL_ROLES))
):
    """
    Listar transacciones

    Cada factura, compra, orden de compra o cotización tiene exactamente una.
    """
    return TransactionService(db).list_transactions(
        auth_context.org_id, limit, offset, doc_model, party_id, date_from, date_to
    )


@transactions_router.get("/summary", response_model=TransactionSummary)
def get_summary(
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_role(ALL_ROLES))
):
    """Totales por tipo de documento en el año fiscal actual"""
    return TransactionService(db).summary(auth_context.org_id)
