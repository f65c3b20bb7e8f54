from app.database.database import Base
from sqlalchemy import Column, String, Text, Numeric, Date, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.dialects.postgresql import UUID
from datetime import date
from uuid import uuid4
from app.common.mixins import OrgMixin, TimestampMixin, AuditMixin


class ExpenseCategory(Base, OrgMixin, TimestampMixin):
    __tablename__ = "expense_categories"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)

    __table_args__ = (
        UniqueConstraint("org_id", "name", name="uq_expense_category_org_name"),
    )


class Expense(Base, OrgMixin, TimestampMixin, AuditMixin):
    __tablename__ = "expenses"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    description = Column(Text, nullable=False)
    amount = Column(Numeric(15, 2), nullable=False)
    date = Column(Date, nullable=False, default=date.today, index=True)
    category_id = Column(UUID(as_uuid=True), ForeignKey("expense_categories.id"), nullable=True, index=True)

    category = relationship("ExpenseCategory")
