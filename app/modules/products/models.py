from app.database.database import Base
from sqlalchemy import Column, String, Text, Numeric, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.dialects.postgresql import UUID
from uuid import uuid4
from app.common.mixins import OrgMixin, TimestampMixin, AuditMixin
import enum


class ProductType(enum.Enum):
    GOODS = "goods"
    SERVICE = "service"


class ProductCategory(Base, OrgMixin, TimestampMixin):
    __tablename__ = "product_categories"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)

    products = relationship("Product", back_populates="category")

    __table_args__ = (
        UniqueConstraint("org_id", "name", name="uq_product_category_org_name"),
    )


class Product(Base, OrgMixin, TimestampMixin, AuditMixin):
    __tablename__ = "products"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    name = Column(String(200), nullable=False, index=True)
    code = Column(String(50), nullable=True, index=True)  # SKU o HSN/SAC
    type = Column(String(20), nullable=False, default=ProductType.GOODS.value)
    description = Column(Text, nullable=True)

    # Valores por defecto al agregar el producto a un documento
    unit = Column(String(10), nullable=False, default="none")
    tax_code = Column(String(20), nullable=False, default="none")
    cost_price = Column(Numeric(15, 2), nullable=True)
    selling_price = Column(Numeric(15, 2), nullable=False, default=0)

    category_id = Column(UUID(as_uuid=True), ForeignKey("product_categories.id"), nullable=True, index=True)
    category = relationship("ProductCategory", back_populates="products")
