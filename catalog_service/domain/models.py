from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional
from uuid import UUID, uuid4

from sqlalchemy import Column, DateTime, Numeric, Text, UniqueConstraint
from sqlmodel import Field, Relationship, SQLModel


class EntityType(str, Enum):
    """Owner of an image set; selects the reference table and the blob folder."""

    CATEGORY = "category"
    PRODUCT = "product"


class Unit(str, Enum):
    CM = "cm"
    IN = "in"
    MM = "mm"
    M = "m"


def _created_at_column() -> Column:
    return Column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)


def _updated_at_column() -> Column:
    return Column(
        DateTime(timezone=True),
        nullable=False,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )


class Category(SQLModel, table=True):
    """
    Represents a product category in a two-level hierarchy.

    Root categories have no parent; a subcategory points at a root category
    and cannot itself be used as a parent.
    """

    __tablename__ = "categories"

    id: UUID = Field(
        default_factory=uuid4,
        primary_key=True,
        description="Unique identifier for the category (UUID).",
    )
    name: str = Field(
        max_length=100,
        unique=True,
        index=True,
        nullable=False,
        description="Category name (e.g., 'Electronics'). Must be unique.",
    )
    slug: str = Field(
        max_length=50,
        unique=True,
        index=True,
        nullable=False,
        description="URL-friendly identifier. Must be unique.",
    )
    description: Optional[str] = Field(
        default=None,
        max_length=500,
        nullable=True,
        description="Optional description of the category.",
    )
    is_active: bool = Field(
        default=True,
        description="Whether the category is active and visible.",
    )
    parent_id: Optional[UUID] = Field(
        default=None,
        foreign_key="categories.id",
        nullable=True,
        index=True,
        description="ID of the parent category for hierarchical structure.",
    )
    created_at: datetime = Field(
        default_factory=datetime.utcnow, sa_column=_created_at_column()
    )
    updated_at: datetime = Field(
        default_factory=datetime.utcnow, sa_column=_updated_at_column()
    )

    # Relationships
    children: List["Category"] = Relationship(
        back_populates="parent",
        sa_relationship_kwargs={"passive_deletes": "all", "order_by": "Category.name"},
    )
    parent: Optional["Category"] = Relationship(
        back_populates="children", sa_relationship_kwargs={"remote_side": "Category.id"}
    )
    images: List["CategoryImage"] = Relationship(
        back_populates="category",
        sa_relationship_kwargs={"cascade": "all, delete-orphan"},
    )
    products: List["Product"] = Relationship(
        back_populates="category",
        sa_relationship_kwargs={"passive_deletes": "all"},
    )


class CategoryImage(SQLModel, table=True):
    """Stored file reference for one category image."""

    __tablename__ = "category_images"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    category_id: UUID = Field(
        foreign_key="categories.id", nullable=False, index=True, ondelete="CASCADE"
    )
    image: str = Field(max_length=255, nullable=False)

    category: Optional[Category] = Relationship(back_populates="images")


class Color(SQLModel, table=True):
    """A named color referenced by product variants."""

    __tablename__ = "colors"
    __table_args__ = (
        UniqueConstraint("color_code", "color_name", name="uq_colors_code_name"),
    )

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    color_code: str = Field(max_length=50, nullable=False, index=True)
    color_name: str = Field(max_length=100, nullable=False, index=True)

    variants: List["ProductVariant"] = Relationship(
        back_populates="color",
        sa_relationship_kwargs={"passive_deletes": "all"},
    )


class Product(SQLModel, table=True):
    """
    Represents a product in the catalog.
    Owns its features, images, variants and dimensions; they are deleted with it.
    """

    __tablename__ = "products"

    id: UUID = Field(
        default_factory=uuid4,
        primary_key=True,
        description="Unique identifier for the product",
    )
    name: str = Field(max_length=150, unique=True, index=True, nullable=False)
    sku: str = Field(max_length=100, unique=True, index=True, nullable=False)
    slug: str = Field(max_length=50, unique=True, index=True, nullable=False)
    brand: str = Field(max_length=100, nullable=False)
    origin: str = Field(max_length=100, nullable=False)
    description: str = Field(
        sa_column=Column(Text, nullable=False),
        description="Detailed description of the product",
    )
    price: Decimal = Field(
        sa_column=Column(Numeric(10, 2), nullable=False),
        description="Base price of the product",
    )
    is_active: bool = Field(default=True)
    category_id: UUID = Field(
        foreign_key="categories.id",
        nullable=False,
        index=True,
        description="ID of the category this product belongs to.",
    )
    created_at: datetime = Field(
        default_factory=datetime.utcnow, sa_column=_created_at_column()
    )
    updated_at: datetime = Field(
        default_factory=datetime.utcnow, sa_column=_updated_at_column()
    )

    # Relationships
    category: Optional[Category] = Relationship(back_populates="products")
    images: List["ProductImage"] = Relationship(
        back_populates="product",
        sa_relationship_kwargs={"cascade": "all, delete-orphan"},
    )
    features: List["ProductFeature"] = Relationship(
        back_populates="product",
        sa_relationship_kwargs={"cascade": "all, delete-orphan"},
    )
    variants: List["ProductVariant"] = Relationship(
        back_populates="product",
        sa_relationship_kwargs={"cascade": "all, delete-orphan"},
    )
    dimensions: Optional["ProductDimensions"] = Relationship(
        back_populates="product",
        sa_relationship_kwargs={"uselist": False, "cascade": "all, delete-orphan"},
    )


class ProductImage(SQLModel, table=True):
    """Stored file reference for one product image."""

    __tablename__ = "product_images"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    product_id: UUID = Field(
        foreign_key="products.id", nullable=False, index=True, ondelete="CASCADE"
    )
    image: str = Field(max_length=255, nullable=False)

    product: Optional[Product] = Relationship(back_populates="images")


class ProductFeature(SQLModel, table=True):
    """A (name, value) pair describing a product."""

    __tablename__ = "product_features"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    product_id: UUID = Field(
        foreign_key="products.id", nullable=False, index=True, ondelete="CASCADE"
    )
    name: str = Field(max_length=100, nullable=False)
    value: str = Field(max_length=255, nullable=False)

    product: Optional[Product] = Relationship(back_populates="features")


class ProductDimensions(SQLModel, table=True):
    """Physical dimensions of a product; at most one row per product."""

    __tablename__ = "product_dimensions"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    product_id: UUID = Field(
        foreign_key="products.id",
        nullable=False,
        unique=True,
        ondelete="CASCADE",
    )
    length: Decimal = Field(sa_column=Column(Numeric(10, 2), nullable=False))
    width: Decimal = Field(sa_column=Column(Numeric(10, 2), nullable=False))
    height: Decimal = Field(sa_column=Column(Numeric(10, 2), nullable=False))
    depth: Optional[Decimal] = Field(
        default=None, sa_column=Column(Numeric(10, 2), nullable=True)
    )
    diameter: Optional[Decimal] = Field(
        default=None, sa_column=Column(Numeric(10, 2), nullable=True)
    )
    unit: str = Field(max_length=5, nullable=False)

    product: Optional[Product] = Relationship(back_populates="dimensions")


class ProductVariant(SQLModel, table=True):
    """
    A purchasable SKU-level configuration of a product (color, price, stock).
    """

    __tablename__ = "product_variants"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    product_id: UUID = Field(
        foreign_key="products.id", nullable=False, index=True, ondelete="CASCADE"
    )
    sku: str = Field(max_length=100, unique=True, index=True, nullable=False)
    available_quantity: int = Field(default=0, ge=0, nullable=False)
    price: Decimal = Field(sa_column=Column(Numeric(10, 2), nullable=False))
    color_id: UUID = Field(foreign_key="colors.id", nullable=False, index=True)

    product: Optional[Product] = Relationship(back_populates="variants")
    color: Optional[Color] = Relationship(back_populates="variants")
    dimensions: Optional["ProductVariantDimension"] = Relationship(
        back_populates="variant",
        sa_relationship_kwargs={"uselist": False, "cascade": "all, delete-orphan"},
    )


class ProductVariantDimension(SQLModel, table=True):
    """Physical dimensions of a single variant."""

    __tablename__ = "product_variant_dimensions"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    variant_id: UUID = Field(
        foreign_key="product_variants.id",
        nullable=False,
        unique=True,
        ondelete="CASCADE",
    )
    length: Decimal = Field(sa_column=Column(Numeric(10, 2), nullable=False))
    width: Decimal = Field(sa_column=Column(Numeric(10, 2), nullable=False))
    height: Decimal = Field(sa_column=Column(Numeric(10, 2), nullable=False))
    depth: Optional[Decimal] = Field(
        default=None, sa_column=Column(Numeric(10, 2), nullable=True)
    )
    diameter: Optional[Decimal] = Field(
        default=None, sa_column=Column(Numeric(10, 2), nullable=True)
    )
    unit: str = Field(max_length=5, nullable=False)

    variant: Optional[ProductVariant] = Relationship(back_populates="dimensions")
