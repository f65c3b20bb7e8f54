from sqlalchemy.orm import Session, joinedload
from sqlalchemy.exc import IntegrityError
from sqlalchemy import func
from fastapi import HTTPException, status
from decimal import Decimal
from typing import List, Optional
from uuid import UUID
from datetime import date
import logging

from app.common.exceptions import ExpenseNotFound, ExpenseCategoryNotFound, ExpenseCategoryNotDeleted
from app.modules.expenses.models import Expense, ExpenseCategory
from app.modules.expenses.schemas import (
    ExpenseCreate, ExpenseUpdate, ExpenseList, ExpenseCategoryCreate, ExpenseCategoryUpdate
)

logger = logging.getLogger(__name__)


class ExpenseService:
    """Gastos y categorías de gastos de una organización"""

    def __init__(self, db: Session):
        self.db = db

    # ===== Categorías =====

    def create_category(self, data: ExpenseCategoryCreate, org_id: UUID) -> ExpenseCategory:
        category = ExpenseCategory(name=data.name, description=data.description, org_id=org_id)
        self.db.add(category)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"Ya existe una categoría de gasto con el nombre '{data.name}'"
            )
        self.db.refresh(category)
        return category

    def list_categories(self, org_id: UUID) -> List[ExpenseCategory]:
        return self.db.query(ExpenseCategory).filter(
            ExpenseCategory.org_id == org_id
        ).order_by(ExpenseCategory.name).all()

    def get_category(self, category_id: UUID, org_id: UUID) -> ExpenseCategory:
        category = self.db.query(ExpenseCategory).filter(
            ExpenseCategory.id == category_id,
            ExpenseCategory.org_id == org_id
        ).first()
        if not category:
            raise ExpenseCategoryNotFound()
        return category

    def update_category(self, category_id: UUID, data: ExpenseCategoryUpdate, org_id: UUID) -> ExpenseCategory:
        category = self.get_category(category_id, org_id)
        for field, value in data.model_dump(exclude_unset=True).items():
            setattr(category, field, value)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Ya existe una categoría de gasto con ese nombre"
            )
        self.db.refresh(category)
        return category

    def delete_category(self, category_id: UUID, org_id: UUID) -> None:
        """No se elimina una categoría que todavía tiene gastos."""
        category = self.get_category(category_id, org_id)
        in_use = self.db.query(Expense.id).filter(
            Expense.org_id == org_id,
            Expense.category_id == category.id
        ).first()
        if in_use:
            raise ExpenseCategoryNotDeleted("La categoría tiene gastos asociados")

        self.db.delete(category)
        self.db.commit()

    # ===== Gastos =====

    def create_expense(self, data: ExpenseCreate, org_id: UUID, user_id: UUID) -> Expense:
        if data.category_id is not None:
            self.get_category(data.category_id, org_id)

        expense = Expense(**data.model_dump(), org_id=org_id, created_by=user_id, updated_by=user_id)
        self.db.add(expense)
        self.db.commit()
        self.db.refresh(expense)

        logger.info(f"Expense created {expense.id} ({expense.amount}) in org {org_id}")
        return expense

    def list_expenses(
        self,
        org_id: UUID,
        limit: int = 100,
        offset: int = 0,
        category_id: Optional[UUID] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None
    ) -> ExpenseList:
        query = self.db.query(Expense).filter(Expense.org_id == org_id)
        if category_id:
            query = query.filter(Expense.category_id == category_id)
        if date_from:
            query = query.filter(Expense.date >= date_from)
        if date_to:
            query = query.filter(Expense.date <= date_to)

        total = query.count()
        total_amount = query.with_entities(func.coalesce(func.sum(Expense.amount), 0)).scalar()
        expenses = query.options(joinedload(Expense.category)).order_by(
            Expense.date.desc()
        ).offset(offset).limit(limit).all()

        return ExpenseList(
            items=expenses,
            total=total,
            limit=limit,
            offset=offset,
            total_amount=Decimal(str(total_amount))
        )

    def get_expense(self, expense_id: UUID, org_id: UUID) -> Expense:
        expense = self.db.query(Expense).options(joinedload(Expense.category)).filter(
            Expense.id == expense_id,
            Expense.org_id == org_id
        ).first()
        if not expense:
            raise ExpenseNotFound()
        return expense

    def update_expense(self, expense_id: UUID, data: ExpenseUpdate, org_id: UUID, user_id: UUID) -> Expense:
        expense = self.get_expense(expense_id, org_id)
        changes = data.model_dump(exclude_unset=True)
        if changes.get("category_id") is not None:
            self.get_category(changes["category_id"], org_id)

        for field, value in changes.items():
            setattr(expense, field, value)
        expense.updated_by = user_id

        self.db.commit()
        self.db.refresh(expense)
        return expense

    def delete_expense(self, expense_id: UUID, org_id: UUID) -> None:
        expense = self.get_expense(expense_id, org_id)
        self.db.delete(expense)
        self.db.commit()
