from fastapi import APIRouter, Depends, status, Query
from sqlalchemy.orm import Session
from typing import Optional
from uuid import UUID
from datetime import date

from app.database.database import get_db
from app.modules.auth.dependencies import AuthDependencies
from app.modules.auth.schemas import AuthContext, ALL_ROLES, WRITE_ROLES
from app.modules.billing.models import DocumentKind, PAYABLE_KINDS, SENDABLE_KINDS
from app.modules.billing.service import BillingService
from app.modules.billing.schemas import (
    DocumentCreate, DocumentUpdate, DocumentOut, DocumentList, DocumentFilters, NextNumberOut,
    PaymentIn, SendDocumentRequest, SendDocumentResponse, PrintData
)


def build_document_router(kind: DocumentKind, prefix: str, tag: str) -> APIRouter:
    """
    Router REST de un tipo de documento.

    Todos los tipos comparten CRUD, numeración e impresión; pagos, envío por
    correo y conversión solo se registran para los tipos que los admiten.
    """
    router = APIRouter(prefix=prefix, tags=[tag])

    @router.post("/", response_model=DocumentOut, status_code=status.HTTP_201_CREATED)
    def create_document(
        document_data: DocumentCreate,
        db: Session = Depends(get_db),
        auth_context: AuthContext = Depends(AuthDependencies.require_role(WRITE_ROLES))
    ):
        """
        Crear un documento con sus ítems

        - **sequence**: opcional; si se omite se asigna el siguiente número del año fiscal
        - **interstate**: el impuesto va completo a IGST en vez de CGST + SGST
        - Un número ya usado en el año fiscal responde 409 (sequence_conflict)
        """
        return BillingService(db, kind).create_document(document_data, auth_context.org_id, auth_context.user_id)

    @router.get("/", response_model=DocumentList)
    def list_documents(
        limit: int = Query(100, ge=1, le=1000),
        offset: int = Query(0, ge=0),
        search: Optional[str] = Query(None, description="Buscar por número, descripción o nombre"),
        status: Optional[str] = Query(None),
        party_id: Optional[UUID] = Query(None),
        date_from: Optional[date] = Query(None, description="Fecha inicial (YYYY-MM-DD)"),
        date_to: Optional[date] = Query(None, description="Fecha final (YYYY-MM-DD)"),
        db: Session = Depends(get_db),
        auth_context: AuthContext = Depends(AuthDependencies.require_role(ALL_ROLES))
    ):
        filters = DocumentFilters(
            search=search,
            status=status,
            party_id=party_id,
            date_from=date_from,
            date_to=date_to
        )
        return BillingService(db, kind).list_documents(auth_context.org_id, filters, limit, offset)

    @router.get("/next-number", response_model=NextNumberOut)
    def get_next_number(
        db: Session = Depends(get_db),
        auth_context: AuthContext = Depends(AuthDependencies.require_role(ALL_ROLES))
    ):
        """Siguiente número disponible en el año fiscal actual"""
        return BillingService(db, kind).next_number(auth_context.org_id)

    @router.get("/{document_id}", response_model=DocumentOut)
    def get_document(
        document_id: UUID,
        db: Session = Depends(get_db),
        auth_context: AuthContext = Depends(AuthDependencies.require_role(ALL_ROLES))
    ):
        return BillingService(db, kind).get_document(document_id, auth_context.org_id)

    @router.patch("/{document_id}", response_model=DocumentOut)
    def update_document(
        document_id: UUID,
        document_update: DocumentUpdate,
        db: Session = Depends(get_db),
        auth_context: AuthContext = Depends(AuthDependencies.require_role(WRITE_ROLES))
    ):
        """
        Actualizar un documento

        Los totales se recalculan siempre. El documento conserva su propio número.
        """
        return BillingService(db, kind).update_document(
            document_id, document_update, auth_context.org_id, auth_context.user_id
        )

    @router.delete("/{document_id}", status_code=status.HTTP_204_NO_CONTENT)
    def delete_document(
        document_id: UUID,
        db: Session = Depends(get_db),
        auth_context: AuthContext = Depends(AuthDependencies.require_role(["owner", "admin"]))
    ):
        """Eliminar un documento junto con su transacción"""
        BillingService(db, kind).delete_document(document_id, auth_context.org_id)

    @router.get("/{document_id}/print-data", response_model=PrintData)
    def get_print_data(
        document_id: UUID,
        db: Session = Depends(get_db),
        auth_context: AuthContext = Depends(AuthDependencies.require_role(ALL_ROLES))
    ):
        """Datos para imprimir o generar el PDF del documento"""
        return BillingService(db, kind).print_context(document_id, auth_context.org_id)

    if kind in PAYABLE_KINDS:
        @router.post("/{document_id}/payment", response_model=DocumentOut)
        def record_payment(
            document_id: UUID,
            payment: PaymentIn,
            db: Session = Depends(get_db),
            auth_context: AuthContext = Depends(AuthDependencies.require_role(WRITE_ROLES))
        ):
            """Registrar el pago; si cubre el total el documento queda pagado"""
            return BillingService(db, kind).record_payment(
                document_id, payment, auth_context.org_id, auth_context.user_id
            )

    if kind in SENDABLE_KINDS:
        @router.post("/{document_id}/send", response_model=SendDocumentResponse,
                     status_code=status.HTTP_202_ACCEPTED)
        def send_document(
            document_id: UUID,
            request: SendDocumentRequest,
            db: Session = Depends(get_db),
            auth_context: AuthContext = Depends(AuthDependencies.require_role(WRITE_ROLES))
        ):
            """Enviar el documento por correo a entre 1 y 5 destinatarios"""
            return BillingService(db, kind).send_document(document_id, request, auth_context.org_id)

    if kind == DocumentKind.QUOTE:
        @router.post("/{document_id}/convert", response_model=DocumentOut,
                     status_code=status.HTTP_201_CREATED)
        def convert_quote(
            document_id: UUID,
            db: Session = Depends(get_db),
            auth_context: AuthContext = Depends(AuthDependencies.require_role(WRITE_ROLES))
        ):
            """Convertir la cotización en factura (una sola vez)"""
            return BillingService(db, kind).convert_quote(document_id, auth_context.org_id, auth_context.user_id)

    return router


invoices_router = build_document_router(DocumentKind.INVOICE, "/invoices", "Invoices")
purchases_router = build_document_router(DocumentKind.PURCHASE, "/purchases", "Purchases")
purchase_orders_router = build_document_router(DocumentKind.PURCHASE_ORDER, "/purchase-orders", "Purchase Orders")
quotes_router = build_document_router(DocumentKind.QUOTE, "/quotes", "Quotes")
