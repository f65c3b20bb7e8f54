"""
Typed domain errors for the billing API.

Every error carries a machine-stable ``code`` and an HTTP status so that
routers never need to translate them by hand: the handler registered in
``register_exception_handlers`` serialises them as
``{"detail": <message>, "code": <code>}``.
"""
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
import logging

logger = logging.getLogger(__name__)


class BillingError(Exception):
    """Base class for all client-facing domain errors."""

    code = "billing_error"
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Error de facturación"

    def __init__(self, message: str = None, **context):
        self.message = message or self.default_message
        self.context = context
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"detail": self.message, "code": self.code}


# ===== Cálculo =====

class InvalidLineItem(BillingError):
    code = "invalid_line_item"
    default_message = "El ítem tiene precio o cantidad negativos"


class InvalidTaxCode(BillingError):
    code = "invalid_tax_code"
    default_message = "Código de impuesto desconocido"

    def __init__(self, tax_code: str = None, message: str = None):
        self.tax_code = tax_code
        super().__init__(message or f"Código de impuesto inválido: {tax_code!r}", tax_code=tax_code)


# ===== Numeración =====

class SequenceConflict(BillingError):
    code = "sequence_conflict"
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, sequence: int = None, kind: str = None):
        self.sequence = sequence
        self.kind = kind
        label = f"{kind} " if kind else ""
        super().__init__(
            f"Ya existe un documento {label}con el número {sequence} en este año fiscal",
            sequence=sequence,
            kind=kind,
        )


# ===== Entidades no encontradas =====

class NotFoundError(BillingError):
    code = "not_found"
    status_code = status.HTTP_404_NOT_FOUND


class DocumentNotFound(NotFoundError):
    code = "document_not_found"
    default_message = "Documento no encontrado"


class PartyNotFound(NotFoundError):
    code = "party_not_found"
    default_message = "Cliente/proveedor no encontrado"


class OrgNotFound(NotFoundError):
    code = "org_not_found"
    default_message = "Organización no encontrada o sin configuración"


class ProductNotFound(NotFoundError):
    code = "product_not_found"
    default_message = "Producto no encontrado"


class ProductCategoryNotFound(NotFoundError):
    code = "product_category_not_found"
    default_message = "Categoría de producto no encontrada"


class ExpenseNotFound(NotFoundError):
    code = "expense_not_found"
    default_message = "Gasto no encontrado"


class ExpenseCategoryNotFound(NotFoundError):
    code = "expense_category_not_found"
    default_message = "Categoría de gasto no encontrada"


# ===== Reglas de negocio =====

class PartyInUse(BillingError):
    code = "party_in_use"
    status_code = status.HTTP_409_CONFLICT
    default_message = "El cliente/proveedor tiene documentos asociados"


class ExpenseCategoryNotDeleted(BillingError):
    code = "expense_category_not_deleted"
    default_message = "La categoría de gasto no se pudo eliminar"


class QuoteAlreadyConverted(BillingError):
    code = "quote_already_converted"
    status_code = status.HTTP_409_CONFLICT
    default_message = "La cotización ya fue convertida en factura"


class OperationNotAllowed(BillingError):
    code = "operation_not_allowed"
    default_message = "Operación no permitida para este tipo de documento"


class InvalidStatus(BillingError):
    code = "invalid_status"
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_message = "Estado no válido para este tipo de documento"


class LedgerWriteError(BillingError):
    """The document and its ledger row could not be persisted together."""

    code = "ledger_write_failed"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "No se pudo guardar el documento y su transacción"


def register_exception_handlers(app: FastAPI):

    @app.exception_handler(BillingError)
    async def billing_error_handler(request: Request, exc: BillingError):
        if exc.status_code >= 500:
            logger.error(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
        else:
            logger.info(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
        return JSONResponse(content=exc.to_dict(), status_code=exc.status_code)
