"""
Numeración de documentos por organización, tipo y año fiscal.

``next_sequence`` toma el máximo existente + 1, de modo que al borrar el
último documento su número vuelve a quedar libre. La unicidad la garantiza
el índice ``uq_billing_document_sequence``; además, dentro de un proceso,
la comprobación y la escritura de cada clave se serializan con un lock
(``SequenceGuard.reserve``) para que las peticiones concurrentes fallen con
``SequenceConflict`` en vez de llegar al error de integridad.
"""

from contextlib import contextmanager
from typing import NamedTuple, Optional
from uuid import UUID
from datetime import date
import threading
import logging
import weakref

from sqlalchemy.orm import Session

from app.common.exceptions import SequenceConflict
from app.modules.billing.models import BillingDocument
from app.modules.organizations.schemas import FinancialYear

logger = logging.getLogger(__name__)


class SequenceKey(NamedTuple):
    org_id: UUID
    kind: str
    fy_start: date
    fy_end: date


# Un lock vive mientras alguna petición lo está usando
_locks: "weakref.WeakValueDictionary[SequenceKey, threading.Lock]" = weakref.WeakValueDictionary()
_locks_guard = threading.Lock()


def sequence_lock(key: SequenceKey) -> threading.Lock:
    with _locks_guard:
        lock = _locks.get(key)
        if lock is None:
            lock = _locks[key] = threading.Lock()
        return lock


def format_number(prefix: Optional[str], sequence: int) -> str:
    return f"{prefix or ''}{sequence}"


class SequenceGuard:
    """Consultas de numeración sobre billing_documents"""

    def __init__(self, db: Session):
        self.db = db

    @staticmethod
    def key(org_id: UUID, kind: str, financial_year: FinancialYear) -> SequenceKey:
        return SequenceKey(org_id, kind, financial_year.start, financial_year.end)

    def _scope(self, org_id: UUID, kind: str, financial_year: FinancialYear):
        return self.db.query(BillingDocument).filter(
            BillingDocument.org_id == org_id,
            BillingDocument.kind == kind,
            BillingDocument.fy_start == financial_year.start,
            BillingDocument.fy_end == financial_year.end
        )

    def next_sequence(self, org_id: UUID, kind: str, financial_year: FinancialYear) -> int:
        """Siguiente número libre: el mayor existente + 1, o 1 si no hay documentos."""
        last = self._scope(org_id, kind, financial_year).order_by(
            BillingDocument.sequence.desc()
        ).first()
        return last.sequence + 1 if last else 1

    def assert_no_duplicate(
        self,
        org_id: UUID,
        kind: str,
        financial_year: FinancialYear,
        sequence: int,
        excluding_id: Optional[UUID] = None
    ) -> None:
        """
        Falla con SequenceConflict si otro documento del mismo tipo y año
        fiscal ya usa ``sequence``. Al editar se excluye el propio documento.
        """
        query = self._scope(org_id, kind, financial_year).filter(BillingDocument.sequence == sequence)
        if excluding_id is not None:
            query = query.filter(BillingDocument.id != excluding_id)

        if query.first() is not None:
            logger.info(f"Sequence conflict org={org_id} kind={kind} fy={financial_year.start} seq={sequence}")
            raise SequenceConflict(sequence, kind)

    @contextmanager
    def reserve(self, org_id: UUID, kind: str, financial_year: FinancialYear):
        """Sección crítica para comprobar y escribir un número de esta clave."""
        lock = sequence_lock(self.key(org_id, kind, financial_year))
        with lock:
            yield
