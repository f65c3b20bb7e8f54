from fastapi import APIRouter, Depends, status, Query
from sqlalchemy.orm import Session
from typing import List, Optional
from uuid import UUID
from datetime import date

from app.database.database import get_db
from app.modules.auth.dependencies import AuthDependencies
from app.modules.auth.schemas import AuthContext, ALL_ROLES, WRITE_ROLES
from app.modules.expenses.service import ExpenseService
from app.modules.expenses.schemas import (
    ExpenseCreate, ExpenseUpdate, ExpenseOut, ExpenseList,
    ExpenseCategoryCreate, ExpenseCategoryUpdate, ExpenseCategoryOut
)

expenses_router = APIRouter(prefix="/expenses", tags=["Expenses"])


# ===== Categorías =====

@expenses_router.post("/categories", response_model=ExpenseCategoryOut, status_code=status.HTTP_201_CREATED)
def create_expense_category(
    data: ExpenseCategoryCreate,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_role(WRITE_ROLES))
):
    return ExpenseService(db).create_category(data, auth_context.org_id)


@expenses_router.get("/categories", response_model=List[ExpenseCategoryOut])
def list_expense_categories(
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_role(ALL_ROLES))
):
    return ExpenseService(db).list_categories(auth_context.org_id)


@expenses_router.get("/categories/{category_id}", response_model=ExpenseCategoryOut)
def get_expense_category(
    category_id: UUID,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_role(ALL_ROLES))
):
    return ExpenseService(db).get_category(category_id, auth_context.org_id)


@expenses_router.patch("/categories/{category_id}", response_model=ExpenseCategoryOut)
def update_expense_category(
    category_id: UUID,
    data: ExpenseCategoryUpdate,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_role(WRITE_ROLES))
):
    return ExpenseService(db).update_category(category_id, data, auth_context.org_id)


@expenses_router.delete("/categories/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_expense_category(
    category_id: UUID,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_role(["owner", "admin"]))
):
    """Falla si la categoría todavía tiene gastos"""
    ExpenseService(db).delete_category(category_id, auth_context.org_id)


# ===== Gastos =====

@expenses_router.post("/", response_model=ExpenseOut, status_code=status.HTTP_201_CREATED)
def create_expense(
    data: ExpenseCreate,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_role(WRITE_ROLES))
):
    return ExpenseService(db).create_expense(data, auth_context.org_id, auth_context.user_id)


@expenses_router.get("/", response_model=ExpenseList)
def list_expenses(
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    category_id: Optional[UUID] = Query(None),
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_role(ALL_ROLES))
):
    return ExpenseService(db).list_expenses(auth_context.org_id, limit, offset, category_id, date_from, date_to)


@expenses_router.get("/{expense_id}", response_model=ExpenseOut)
def get_expense(
    expense_id: UUID,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_role(ALL_ROLES))
):
    return ExpenseService(db).get_expense(expense_id, auth_context.org_id)


@expenses_router.patch("/{expense_id}", response_model=ExpenseOut)
def update_expense(
    expense_id: UUID,
    data: ExpenseUpdate,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_role(WRITE_ROLES))
):
    return ExpenseService(db).update_expense(expense_id, data, auth_context.org_id, auth_context.user_id)


@expenses_router.delete("/{expense_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_expense(
    expense_id: UUID,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_role(["owner", "admin"]))
):
    ExpenseService(db).delete_expense(expense_id, auth_context.org_id)
