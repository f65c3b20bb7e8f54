from fastapi import APIRouter, Depends, status, Query
from sqlalchemy.orm import Session
from typing import Optional
from uuid import UUID

from app.database.database import get_db
from app.modules.auth.dependencies import AuthDependencies
from app.modules.auth.schemas import AuthContext, ALL_ROLES, WRITE_ROLES
from app.modules.products.service import ProductService, ProductCategoryService
from app.modules.products.schemas import (
    ProductCreate, ProductUpdate, ProductOut, ProductList, ProductBulkCreate, ProductBulkResult,
    ProductCategoryCreate, ProductCategoryUpdate, ProductCategoryOut, ProductCategoryList
)

product_categories_router = APIRouter(prefix="/product-categories", tags=["Product Categories"])
products_router = APIRouter(prefix="/products", tags=["Products"])


# ===== Categorías =====

@product_categories_router.post("/", response_model=ProductCategoryOut, status_code=status.HTTP_201_CREATED)
def create_category(
    data: ProductCategoryCreate,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_role(WRITE_ROLES))
):
    return ProductCategoryService(db).create_category(data, auth_context.org_id)


@product_categories_router.get("/", response_model=ProductCategoryList)
def list_categories(
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_role(ALL_ROLES))
):
    return ProductCategoryService(db).list_categories(auth_context.org_id, limit, offset)


@product_categories_router.get("/{category_id}", response_model=ProductCategoryOut)
def get_category(
    category_id: UUID,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_role(ALL_ROLES))
):
    return ProductCategoryService(db).get_category(category_id, auth_context.org_id)


@product_categories_router.patch("/{category_id}", response_model=ProductCategoryOut)
def update_category(
    category_id: UUID,
    data: ProductCategoryUpdate,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_role(WRITE_ROLES))
):
    return ProductCategoryService(db).update_category(category_id, data, auth_context.org_id)


@product_categories_router.delete("/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_category(
    category_id: UUID,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_role(["owner", "admin"]))
):
    ProductCategoryService(db).delete_category(category_id, auth_context.org_id)


# ===== Productos =====

@products_router.post("/", response_model=ProductOut, status_code=status.HTTP_201_CREATED)
def create_product(
    data: ProductCreate,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_role(WRITE_ROLES))
):
    """
    Crear un producto o servicio

    - **tax_code**: código de GST por defecto (ej. 'gst:18')
    - **unit**: unidad de medida por defecto
    """
    return ProductService(db).create_product(data, auth_context.org_id, auth_context.user_id)


@products_router.post("/bulk", response_model=ProductBulkResult, status_code=status.HTTP_201_CREATED)
def bulk_create_products(
    data: ProductBulkCreate,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_role(WRITE_ROLES))
):
    """Crear hasta 500 productos en una sola petición"""
    return ProductService(db).bulk_create(data, auth_context.org_id, auth_context.user_id)


@products_router.get("/", response_model=ProductList)
def list_products(
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    search: Optional[str] = Query(None, description="Buscar por nombre, código o descripción"),
    category_id: Optional[UUID] = Query(None),
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_role(ALL_ROLES))
):
    return ProductService(db).list_products(auth_context.org_id, limit, offset, search, category_id)


@products_router.get("/{product_id}", response_model=ProductOut)
def get_product(
    product_id: UUID,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_role(ALL_ROLES))
):
    return ProductService(db).get_product(product_id, auth_context.org_id)


@products_router.patch("/{product_id}", response_model=ProductOut)
def update_product(
    product_id: UUID,
    data: ProductUpdate,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_role(WRITE_ROLES))
):
    return ProductService(db).update_product(product_id, data, auth_context.org_id, auth_context.user_id)


@products_router.delete("/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_product(
    product_id: UUID,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_role(["owner", "admin"]))
):
    ProductService(db).delete_product(product_id, auth_context.org_id)
