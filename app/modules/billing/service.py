"""
Servicio de documentos de facturación

Un mismo servicio atiende facturas, compras, órdenes de compra y
cotizaciones. Cada documento se guarda junto con su fila en
``transactions`` en un único commit: si cualquiera de las dos escrituras
falla se hace rollback de ambas.
"""

from sqlalchemy.orm import Session, selectinload, joinedload
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy import or_
from decimal import Decimal
from typing import Callable, List, Optional, Tuple
from uuid import UUID, uuid4
import datetime as dt
import logging

from app.common.exceptions import (
    BillingError, DocumentNotFound, InvalidStatus, OperationNotAllowed, QuoteAlreadyConverted, LedgerWriteError
)
from app.modules.billing.models import (
    BillingDocument, DocumentLineItem, DocumentKind,
    DOCUMENT_STATUSES, DEFAULT_STATUS, PREFIX_FIELDS, DOCUMENT_TITLES, PAYABLE_KINDS, SENDABLE_KINDS
)
from app.modules.billing.schemas import (
    DocumentCreate, DocumentUpdate, DocumentList, DocumentFilters, NextNumberOut, PaymentIn,
    SendDocumentRequest, SendDocumentResponse,
    PrintData, PrintDocument, PrintOrganization, PrintParty, PrintLine
)
from app.modules.billing.sequence import SequenceGuard, format_number
from app.modules.email.tasks import send_document_email_task
from app.modules.organizations import service as organization_service
from app.modules.organizations.constants import currency_symbol
from app.modules.organizations.schemas import FinancialYear
from app.modules.parties.models import Party
from app.modules.parties.service import PartyService
from app.modules.taxes.calculator import compute_totals, compute_line, round_money
from app.modules.taxes.constants import tax_label, unit_label
from app.modules.taxes.schemas import LineItemIn, TaxBreakdown
from app.modules.transactions.models import Transaction

logger = logging.getLogger(__name__)


class BillingService:
    """CRUD, numeración y contabilización de un tipo de documento"""

    def __init__(self, db: Session, kind: DocumentKind):
        self.db = db
        self.kind = DocumentKind(kind)
        self.guard = SequenceGuard(db)

    # ===== Helpers =====

    def _validate_status(self, value: Optional[str]) -> str:
        if value is None:
            return DEFAULT_STATUS[self.kind]
        if value not in DOCUMENT_STATUSES[self.kind]:
            raise InvalidStatus(
                f"Estado '{value}' no válido para {self.kind.value}; "
                f"permitidos: {', '.join(DOCUMENT_STATUSES[self.kind])}"
            )
        return value

    def _build_lines(self, items: List[LineItemIn], interstate: bool) -> Tuple[List[DocumentLineItem], TaxBreakdown]:
        """Calcular totales y construir las líneas; falla antes de cualquier escritura."""
        totals = compute_totals(items, interstate=interstate)
        lines = []
        for position, item in enumerate(items, start=1):
            amounts = compute_line(item)
            lines.append(DocumentLineItem(
                position=position,
                name=item.name,
                code=item.code,
                price=item.price,
                quantity=item.quantity,
                tax_code=item.tax_code,
                unit=item.unit,
                line_subtotal=round_money(amounts.base),
                line_tax=round_money(amounts.tax),
                line_total=round_money(amounts.total)
            ))
        return lines, totals

    @staticmethod
    def _apply_totals(document: BillingDocument, totals: TaxBreakdown) -> None:
        document.subtotal = totals.subtotal
        document.total_tax = totals.total_tax
        document.cgst = totals.cgst
        document.sgst = totals.sgst
        document.igst = totals.igst
        document.grand_total = totals.grand_total

    @staticmethod
    def _financial_year_of(document: BillingDocument) -> FinancialYear:
        return FinancialYear(start=document.fy_start, end=document.fy_end)

    def _sync_ledger(self, document: BillingDocument, user_id: Optional[UUID], new: bool = False) -> Transaction:
        """Crear o actualizar la fila de transactions del documento."""
        entry = None
        if not new:
            entry = self.db.query(Transaction).filter(Transaction.doc_id == document.id).first()
        if entry is None:
            entry = Transaction(
                org_id=document.org_id,
                doc_model=self.kind.value,
                document=document,
                created_by=user_id
            )
            self.db.add(entry)

        entry.party_id = document.party_id
        entry.fy_start = document.fy_start
        entry.fy_end = document.fy_end
        entry.num = document.num
        entry.date = document.date
        entry.total = document.subtotal
        entry.total_tax = document.total_tax
        return entry

    def _commit_pair(self, org_id: UUID, financial_year: FinancialYear, sequence: int, num: str,
                     action: str, excluding_id: Optional[UUID] = None,
                     on_flushed: Optional[Callable[[], None]] = None) -> None:
        """
        Commit del documento y su transacción.

        Una violación del índice de numeración se reporta como SequenceConflict;
        cualquier otro fallo deja ambos registros sin escribir. ``on_flushed``
        corre con el documento ya insertado y antes del commit.
        """
        try:
            self.db.flush()
            if on_flushed is not None:
                on_flushed()
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            self.guard.assert_no_duplicate(org_id, self.kind.value, financial_year, sequence, excluding_id)
            logger.error(f"Ledger pair write failed on {action} of {self.kind.value} {num}: {e}")
            raise LedgerWriteError()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Ledger pair write failed on {action} of {self.kind.value} {num}: {e}")
            raise LedgerWriteError()
        except BillingError:
            self.db.rollback()
            raise

    # ===== Consultas =====

    def get_document(self, document_id: UUID, org_id: UUID) -> BillingDocument:
        document = self.db.query(BillingDocument).options(
            selectinload(BillingDocument.items),
            joinedload(BillingDocument.party)
        ).filter(
            BillingDocument.id == document_id,
            BillingDocument.org_id == org_id,
            BillingDocument.kind == self.kind.value
        ).first()
        if not document:
            raise DocumentNotFound()
        return document

    def list_documents(self, org_id: UUID, filters: DocumentFilters, limit: int = 100, offset: int = 0) -> DocumentList:
        """Listar documentos con búsqueda por número, descripción o nombre de la party"""
        query = self.db.query(BillingDocument).outerjoin(
            Party, BillingDocument.party_id == Party.id
        ).filter(
            BillingDocument.org_id == org_id,
            BillingDocument.kind == self.kind.value
        )

        if filters.search:
            search_term = f"%{filters.search}%"
            query = query.filter(
                or_(
                    BillingDocument.num.ilike(search_term),
                    BillingDocument.description.ilike(search_term),
                    Party.name.ilike(search_term)
                )
            )
        if filters.status:
            query = query.filter(BillingDocument.status == filters.status)
        if filters.party_id:
            query = query.filter(BillingDocument.party_id == filters.party_id)
        if filters.date_from:
            query = query.filter(BillingDocument.date >= filters.date_from)
        if filters.date_to:
            query = query.filter(BillingDocument.date <= filters.date_to)

        total = query.count()
        documents = query.options(
            selectinload(BillingDocument.items),
            joinedload(BillingDocument.party)
        ).order_by(
            BillingDocument.date.desc(), BillingDocument.sequence.desc()
        ).offset(offset).limit(limit).all()

        return DocumentList(items=documents, total=total, limit=limit, offset=offset)

    def next_number(self, org_id: UUID) -> NextNumberOut:
        """Siguiente número disponible en el año fiscal actual de la organización"""
        org_settings = organization_service.get_settings(self.db, org_id)
        financial_year = FinancialYear(start=org_settings.financial_year_start, end=org_settings.financial_year_end)
        prefix = getattr(org_settings, PREFIX_FIELDS[self.kind])
        sequence = self.guard.next_sequence(org_id, self.kind.value, financial_year)
        return NextNumberOut(sequence=sequence, prefix=prefix, num=format_number(prefix, sequence))

    # ===== Escritura =====

    def create_document(
        self,
        data: DocumentCreate,
        org_id: UUID,
        user_id: UUID,
        on_created: Optional[Callable[[BillingDocument], None]] = None
    ) -> BillingDocument:
        """
        Crear un documento y su transacción.

        Si ``data.sequence`` es None se asigna el siguiente número del año
        fiscal actual. ``on_created`` recibe el documento ya insertado y
        puede modificar otros registros en el mismo commit (ej. marcar la
        cotización convertida).
        """
        org_settings = organization_service.get_settings(self.db, org_id)
        financial_year = FinancialYear(start=org_settings.financial_year_start, end=org_settings.financial_year_end)
        prefix = getattr(org_settings, PREFIX_FIELDS[self.kind])
        party = PartyService(self.db).get_party(data.party_id, org_id)
        status_value = self._validate_status(data.status)
        lines, totals = self._build_lines(data.items, data.interstate)

        is_purchase = self.kind == DocumentKind.PURCHASE
        with self.guard.reserve(org_id, self.kind.value, financial_year):
            sequence = data.sequence or self.guard.next_sequence(org_id, self.kind.value, financial_year)
            self.guard.assert_no_duplicate(org_id, self.kind.value, financial_year, sequence)

            document = BillingDocument(
                id=uuid4(),
                org_id=org_id,
                kind=self.kind.value,
                sequence=sequence,
                fy_start=financial_year.start,
                fy_end=financial_year.end,
                prefix=prefix,
                num=format_number(prefix, sequence),
                party_id=party.id,
                date=data.date,
                due_date=data.due_date,
                status=status_value,
                interstate=data.interstate,
                description=data.description,
                po_no=data.po_no if is_purchase else None,
                po_date=data.po_date if is_purchase else None,
                created_by=user_id,
                updated_by=user_id
            )
            self._apply_totals(document, totals)
            document.items = lines
            self.db.add(document)
            self._sync_ledger(document, user_id, new=True)
            document_id, num = document.id, document.num
            self._commit_pair(
                org_id, financial_year, sequence, num, "create",
                on_flushed=(lambda: on_created(document)) if on_created is not None else None
            )

        logger.info(f"{self.kind.value} {num} created ({document_id}) in org {org_id}")
        return self.get_document(document_id, org_id)

    def update_document(self, document_id: UUID, data: DocumentUpdate, org_id: UUID, user_id: UUID) -> BillingDocument:
        """
        Actualizar un documento y recalcular sus totales.

        El documento conserva su año fiscal; su propio número no cuenta
        como duplicado.
        """
        document = self.get_document(document_id, org_id)
        changes = data.model_dump(exclude_unset=True, exclude={"items"})

        if changes.get("party_id") is not None:
            PartyService(self.db).get_party(changes["party_id"], org_id)
        if "status" in changes:
            changes["status"] = self._validate_status(changes["status"])

        interstate = changes.get("interstate")
        if interstate is None:
            interstate = document.interstate
        if data.items is not None:
            lines, totals = self._build_lines(data.items, interstate)
        else:
            lines, totals = None, compute_totals(document.items, interstate=interstate)

        if self.kind != DocumentKind.PURCHASE:
            changes.pop("po_no", None)
            changes.pop("po_date", None)

        financial_year = self._financial_year_of(document)
        sequence = changes.pop("sequence", None) or document.sequence

        with self.guard.reserve(org_id, self.kind.value, financial_year):
            self.guard.assert_no_duplicate(org_id, self.kind.value, financial_year, sequence, excluding_id=document.id)

            for field, value in changes.items():
                if value is None and field in ("party_id", "date", "interstate", "status"):
                    continue
                setattr(document, field, value)
            document.sequence = sequence
            document.num = format_number(document.prefix, sequence)
            if lines is not None:
                document.items = lines
            self._apply_totals(document, totals)
            document.updated_by = user_id
            self._sync_ledger(document, user_id)

            num = document.num
            self._commit_pair(org_id, financial_year, sequence, num, "update", excluding_id=document_id)

        logger.info(f"{self.kind.value} {num} updated ({document_id}) in org {org_id}")
        return self.get_document(document_id, org_id)

    def delete_document(self, document_id: UUID, org_id: UUID) -> None:
        """
        Eliminar un documento, su transacción y las referencias
        ``converted_id`` que apunten a él, en un solo commit.
        """
        document = self.get_document(document_id, org_id)
        num = document.num
        try:
            self.db.query(Transaction).filter(
                Transaction.org_id == org_id,
                Transaction.doc_id == document.id
            ).delete(synchronize_session=False)
            self.db.query(BillingDocument).filter(
                BillingDocument.org_id == org_id,
                BillingDocument.converted_id == document.id
            ).update({BillingDocument.converted_id: None}, synchronize_session=False)
            self.db.delete(document)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Ledger pair write failed on delete of {self.kind.value} {num}: {e}")
            raise LedgerWriteError()

        logger.info(f"{self.kind.value} {num} deleted ({document_id}) in org {org_id}")

    def record_payment(self, document_id: UUID, payment: PaymentIn, org_id: UUID, user_id: UUID) -> BillingDocument:
        """
        Registrar el pago de una factura o compra.

        Un pago que cubre el total deja el documento como ``paid``.
        """
        if self.kind not in PAYABLE_KINDS:
            raise OperationNotAllowed(f"No se registran pagos en documentos de tipo {self.kind.value}")

        document = self.get_document(document_id, org_id)
        document.payment = {
            "amount": str(payment.amount),
            "mode": payment.mode.value,
            "description": payment.description,
            "date": payment.date.isoformat()
        }
        document.status = "paid" if payment.amount >= Decimal(document.grand_total) else "unpaid"
        document.updated_by = user_id
        self.db.commit()

        logger.info(f"Payment of {payment.amount} recorded on {self.kind.value} {document.num}")
        return self.get_document(document_id, org_id)

    def convert_quote(self, quote_id: UUID, org_id: UUID, user_id: UUID) -> BillingDocument:
        """
        Crear una factura con los ítems de la cotización.

        La cotización queda ``accepted`` y apunta a la factura generada. El
        enlace solo se escribe si la cotización sigue sin convertir.
        """
        if self.kind != DocumentKind.QUOTE:
            raise OperationNotAllowed("Solo las cotizaciones se pueden convertir en factura")

        quote = self.get_document(quote_id, org_id)
        if quote.converted_id is not None:
            raise QuoteAlreadyConverted()

        invoice_data = DocumentCreate(
            party_id=quote.party_id,
            date=dt.date.today(),
            interstate=quote.interstate,
            description=quote.description,
            items=[
                LineItemIn(
                    name=item.name,
                    code=item.code,
                    price=item.price,
                    quantity=item.quantity,
                    tax_code=item.tax_code,
                    unit=item.unit
                )
                for item in quote.items
            ]
        )

        def link_quote(invoice: BillingDocument) -> None:
            claimed = self.db.query(BillingDocument).filter(
                BillingDocument.id == quote.id,
                BillingDocument.converted_id.is_(None)
            ).update({
                BillingDocument.converted_id: invoice.id,
                BillingDocument.status: "accepted",
                BillingDocument.updated_by: user_id
            }, synchronize_session=False)
            # Otra petición la convirtió después de la lectura inicial
            if not claimed:
                raise QuoteAlreadyConverted()

        invoice = BillingService(self.db, DocumentKind.INVOICE).create_document(
            invoice_data, org_id, user_id, on_created=link_quote
        )
        logger.info(f"Quote {quote.num} converted into invoice {invoice.num}")
        return invoice

    # ===== Impresión y envío =====

    def print_context(self, document_id: UUID, org_id: UUID) -> PrintData:
        """Datos para renderizar el documento: líneas con su total, impuestos y moneda."""
        document = self.get_document(document_id, org_id)
        organization = organization_service.get_organization(self.db, org_id)
        org_settings = organization.settings or organization_service.get_settings(self.db, org_id)
        symbol = currency_symbol(org_settings.currency)

        lines = [
            PrintLine(
                name=item.name,
                code=item.code,
                quantity=item.quantity,
                unit=item.unit,
                unit_label=unit_label(item.unit),
                price=item.price,
                tax_code=item.tax_code,
                tax_label=tax_label(item.tax_code),
                line_total=item.line_total
            )
            for item in document.items
        ]

        bank = organization.bank if org_settings.print_bank_details and organization.bank else None
        upi_url = None
        if org_settings.print_upi_qr and organization.bank and organization.bank.get("upi"):
            upi_url = f"upi://pay?pa={organization.bank['upi']}&am={document.grand_total}"

        party = document.party
        return PrintData(
            document=PrintDocument(
                kind=document.kind,
                title=DOCUMENT_TITLES[self.kind],
                num=document.num,
                date=document.date,
                due_date=document.due_date,
                status=document.status,
                interstate=document.interstate,
                description=document.description,
                po_no=document.po_no,
                po_date=document.po_date
            ),
            organization=PrintOrganization(
                name=organization.name,
                address=organization.address,
                state=organization.state,
                phone_number=organization.phone_number,
                email=organization.email,
                gst_no=organization.gst_no,
                pan_no=organization.pan_no
            ),
            party=PrintParty(
                name=party.name,
                email=party.email,
                gst_no=party.gst_no,
                state=party.state,
                billing_address=party.billing_address,
                shipping_address=party.shipping_address
            ),
            lines=lines,
            totals=TaxBreakdown(
                subtotal=document.subtotal,
                total_tax=document.total_tax,
                cgst=document.cgst,
                sgst=document.sgst,
                igst=document.igst,
                grand_total=document.grand_total
            ),
            currency=org_settings.currency,
            currency_symbol=symbol,
            bank=bank,
            upi_url=upi_url
        )

    def send_document(self, document_id: UUID, request: SendDocumentRequest, org_id: UUID) -> SendDocumentResponse:
        """
        Encolar el envío del documento por correo.

        Un documento en borrador pasa a ``sent``.
        """
        if self.kind not in SENDABLE_KINDS:
            raise OperationNotAllowed(f"Los documentos de tipo {self.kind.value} no se envían por correo")

        print_data = self.print_context(document_id, org_id)
        recipients = [str(email) for email in request.to_emails]
        subject = request.subject or (
            f"{print_data.document.title} {print_data.document.num} - {print_data.organization.name}"
        )

        send_document_email_task.delay(
            to_emails=recipients,
            subject=subject,
            context=print_data.model_dump(mode="json"),
            cc_emails=[str(email) for email in request.cc_emails] if request.cc_emails else None,
            message=request.message
        )

        document = self.get_document(document_id, org_id)
        if document.status == "draft" and "sent" in DOCUMENT_STATUSES[self.kind]:
            document.status = "sent"
            self.db.commit()

        logger.info(f"{self.kind.value} {document.num} queued for {len(recipients)} recipient(s)")
        return SendDocumentResponse(
            message="Documento en cola de envío",
            num=print_data.document.num,
            recipients=recipients
        )
