from sqlalchemy.orm import Session, joinedload
from sqlalchemy.exc import IntegrityError
from sqlalchemy import or_
from fastapi import HTTPException, status
from typing import Optional
from uuid import UUID
import logging

from app.common.exceptions import ProductNotFound, ProductCategoryNotFound
from app.modules.products.models import Product, ProductCategory
from app.modules.products.schemas import (
    ProductCreate, ProductUpdate, ProductList, ProductBulkCreate, ProductBulkResult,
    ProductCategoryCreate, ProductCategoryUpdate, ProductCategoryList
)

logger = logging.getLogger(__name__)


class ProductCategoryService:
    """Servicio para gestión de categorías de productos"""

    def __init__(self, db: Session):
        self.db = db

    def create_category(self, data: ProductCategoryCreate, org_id: UUID) -> ProductCategory:
        existing = self.db.query(ProductCategory).filter(
            ProductCategory.org_id == org_id,
            ProductCategory.name == data.name
        ).first()
        if existing:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"Ya existe una categoría con el nombre '{data.name}'"
            )

        category = ProductCategory(name=data.name, description=data.description, org_id=org_id)
        self.db.add(category)
        self.db.commit()
        self.db.refresh(category)
        return category

    def list_categories(self, org_id: UUID, limit: int = 100, offset: int = 0) -> ProductCategoryList:
        query = self.db.query(ProductCategory).filter(ProductCategory.org_id == org_id)
        total = query.count()
        categories = query.order_by(ProductCategory.name).offset(offset).limit(limit).all()
        return ProductCategoryList(items=categories, total=total, limit=limit, offset=offset)

    def get_category(self, category_id: UUID, org_id: UUID) -> ProductCategory:
        category = self.db.query(ProductCategory).filter(
            ProductCategory.id == category_id,
            ProductCategory.org_id == org_id
        ).first()
        if not category:
            raise ProductCategoryNotFound()
        return category

    def update_category(self, category_id: UUID, data: ProductCategoryUpdate, org_id: UUID) -> ProductCategory:
        category = self.get_category(category_id, org_id)
        for field, value in data.model_dump(exclude_unset=True).items():
            setattr(category, field, value)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Ya existe una categoría con ese nombre"
            )
        self.db.refresh(category)
        return category

    def delete_category(self, category_id: UUID, org_id: UUID) -> None:
        """Eliminar categoría; los productos quedan sin categoría."""
        category = self.get_category(category_id, org_id)
        self.db.query(Product).filter(
            Product.org_id == org_id,
            Product.category_id == category.id
        ).update({Product.category_id: None}, synchronize_session=False)
        self.db.delete(category)
        self.db.commit()


class ProductService:
    """Servicio para gestión de productos y servicios"""

    def __init__(self, db: Session):
        self.db = db

    def _check_category(self, category_id: Optional[UUID], org_id: UUID) -> None:
        if category_id is not None:
            ProductCategoryService(self.db).get_category(category_id, org_id)

    def create_product(self, data: ProductCreate, org_id: UUID, user_id: UUID) -> Product:
        self._check_category(data.category_id, org_id)

        product = Product(
            **data.model_dump(exclude={"type"}),
            type=data.type.value,
            org_id=org_id,
            created_by=user_id,
            updated_by=user_id
        )
        self.db.add(product)
        self.db.commit()
        self.db.refresh(product)

        logger.info(f"Product created {product.id} in org {org_id}")
        return product

    def bulk_create(self, data: ProductBulkCreate, org_id: UUID, user_id: UUID) -> ProductBulkResult:
        """Crear varios productos en un solo commit"""
        for category_id in {p.category_id for p in data.products if p.category_id}:
            self._check_category(category_id, org_id)

        for product_data in data.products:
            self.db.add(Product(
                **product_data.model_dump(exclude={"type"}),
                type=product_data.type.value,
                org_id=org_id,
                created_by=user_id,
                updated_by=user_id
            ))
        self.db.commit()

        logger.info(f"{len(data.products)} products created in org {org_id}")
        return ProductBulkResult(message="Productos creados", products_created=len(data.products))

    def list_products(
        self,
        org_id: UUID,
        limit: int = 100,
        offset: int = 0,
        search: Optional[str] = None,
        category_id: Optional[UUID] = None
    ) -> ProductList:
        query = self.db.query(Product).filter(Product.org_id == org_id)

        if search:
            search_term = f"%{search}%"
            query = query.filter(
                or_(
                    Product.name.ilike(search_term),
                    Product.code.ilike(search_term),
                    Product.description.ilike(search_term)
                )
            )
        if category_id:
            query = query.filter(Product.category_id == category_id)

        total = query.count()
        products = query.options(joinedload(Product.category)).order_by(
            Product.created_at.desc(), Product.name
        ).offset(offset).limit(limit).all()

        return ProductList(items=products, total=total, limit=limit, offset=offset)

    def get_product(self, product_id: UUID, org_id: UUID) -> Product:
        product = self.db.query(Product).options(joinedload(Product.category)).filter(
            Product.id == product_id,
            Product.org_id == org_id
        ).first()
        if not product:
            raise ProductNotFound()
        return product

    def update_product(self, product_id: UUID, data: ProductUpdate, org_id: UUID, user_id: UUID) -> Product:
        product = self.get_product(product_id, org_id)
        changes = data.model_dump(exclude_unset=True)
        if changes.get("category_id") is not None:
            self._check_category(changes["category_id"], org_id)
        if changes.get("type") is not None:
            changes["type"] = data.type.value

        for field, value in changes.items():
            setattr(product, field, value)
        product.updated_by = user_id

        self.db.commit()
        self.db.refresh(product)
        return product

    def delete_product(self, product_id: UUID, org_id: UUID) -> None:
        product = self.get_product(product_id, org_id)
        self.db.delete(product)
        self.db.commit()
        logger.info(f"Product deleted {product_id} in org {org_id}")
