from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from catalog_service.domain.models import Unit

# No leading/trailing spaces and no consecutive spaces
NORMALIZED_TEXT = r"^\S+(?: \S+)*$"
SLUG = r"^[a-z0-9-]+$"


###### Pagination ############
class PaginationQuery(BaseModel):
    """Common list parameters: free-text search plus limit/offset paging."""

    q: Optional[str] = Field(default=None, description="Case-insensitive name search")
    limit: int = Field(10, ge=1, le=100, description="Number of items to return")
    offset: int = Field(0, ge=0, description="Number of items to skip")


###### Category schemas ############
class CategoryIncludeOptions(BaseModel):
    """
    Relations to load with a category.
    Translated into loader options by `category_load_options`.
    """

    with_images: bool = False
    with_products: bool = False
    with_product_count: bool = False


class CategoryListQuery(PaginationQuery, CategoryIncludeOptions):
    """Filters for GET /categories."""

    only_root: bool = Field(False, description="Only categories without a parent")
    only_children: bool = Field(False, description="Only categories with a parent")
    exclude_id: Optional[UUID] = Field(
        default=None, description="Category to leave out (e.g. when picking a parent)"
    )


class CategoryBase(BaseModel):
    """
    Base schema for Category with common fields.
    Used as a parent for Create and Update schemas.
    """

    name: str = Field(..., min_length=1, max_length=100, pattern=NORMALIZED_TEXT)
    slug: str = Field(..., min_length=3, max_length=50, pattern=SLUG)
    description: Optional[str] = Field(
        default=None, max_length=500, pattern=NORMALIZED_TEXT
    )
    is_active: bool = True
    parent_id: Optional[UUID] = None


class CategoryCreate(CategoryBase):
    """
    Schema for creating a new category.
    Images are sent as multipart files next to this payload.
    """

    pass


class CategoryUpdate(BaseModel):
    """
    Schema for updating an existing category.
    All fields are optional; only provided fields are updated.
    `images` lists already-stored references to keep.
    """

    name: Optional[str] = Field(
        default=None, min_length=1, max_length=100, pattern=NORMALIZED_TEXT
    )
    slug: Optional[str] = Field(default=None, min_length=3, max_length=50, pattern=SLUG)
    description: Optional[str] = Field(
        default=None, max_length=500, pattern=NORMALIZED_TEXT
    )
    is_active: Optional[bool] = None
    parent_id: Optional[UUID] = None
    images: Optional[List[str]] = None


class CategoryProductSummary(BaseModel):
    id: UUID
    name: str
    slug: str
    sku: str
    price: str
    is_active: bool


class CategoryResponse(BaseModel):
    """
    Schema for returning category data in API responses.
    Optional relations are only present when requested.
    """

    id: UUID
    name: str
    slug: str
    description: Optional[str] = None
    is_active: bool
    parent_id: Optional[UUID] = None
    created_at: datetime
    updated_at: datetime
    images: Optional[List[str]] = None
    products: Optional[List[CategoryProductSummary]] = None
    product_count: Optional[int] = None
    children: Optional[List["CategoryResponse"]] = None


class CategoryListResponse(BaseModel):
    """
    Response model for returning a paginated list of categories.
    """

    count: int
    pages: int
    data: List[CategoryResponse]


# Fix forward references
CategoryResponse.model_rebuild()


###### Product schemas ############
class ProductFeatureSchema(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    value: str = Field(..., min_length=1, max_length=255)


class DimensionsSchema(BaseModel):
    """Dimensions travel as strings and are stored as NUMERIC(10, 2)."""

    length: str = Field(..., min_length=1)
    width: str = Field(..., min_length=1)
    height: str = Field(..., min_length=1)
    depth: Optional[str] = None
    diameter: Optional[str] = None
    unit: Unit


class ProductVariantCreate(BaseModel):
    sku: str = Field(..., min_length=1, max_length=100)
    available_quantity: int = Field(..., ge=0)
    price: str = Field(..., min_length=1, description="Decimal as string, e.g. '1.250,00'")
    color_name: str = Field(..., min_length=1, max_length=100)
    color_code: Optional[str] = Field(
        default=None,
        max_length=50,
        description="Used only when the color does not exist yet",
    )
    dimensions: Optional[DimensionsSchema] = None

    @field_validator("sku", "color_name", mode="before")
    @classmethod
    def strip_whitespace(cls, v):
        if isinstance(v, str):
            return v.strip()
        return v


class ProductCreate(BaseModel):
    """
    Schema for creating a new product.
    Variant/image presence and SKU uniqueness are enforced by ProductService.
    """

    name: str = Field(..., min_length=1, max_length=150)
    origin: str = Field(..., min_length=1, max_length=100)
    sku: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., min_length=1, pattern=NORMALIZED_TEXT)
    slug: str = Field(..., min_length=3, max_length=50, pattern=SLUG)
    price: str = Field(..., min_length=1)
    brand: str = Field(..., min_length=1, max_length=100)
    is_active: bool = True
    category_id: UUID
    dimensions: Optional[DimensionsSchema] = None
    features: List[ProductFeatureSchema] = Field(default_factory=list)
    variants: List[ProductVariantCreate] = Field(default_factory=list)

    @field_validator("name", "origin", "sku", "brand", mode="before")
    @classmethod
    def strip_whitespace(cls, v):
        if isinstance(v, str):
            return v.strip()
        return v


class ProductUpdate(BaseModel):
    """
    Schema for updating an existing product.
    All fields are optional; only provided fields are updated.
    """

    name: Optional[str] = Field(default=None, min_length=1, max_length=150)
    origin: Optional[str] = Field(default=None, min_length=1, max_length=100)
    sku: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = Field(
        default=None, min_length=1, pattern=NORMALIZED_TEXT
    )
    slug: Optional[str] = Field(default=None, min_length=3, max_length=50, pattern=SLUG)
    price: Optional[str] = Field(default=None, min_length=1)
    brand: Optional[str] = Field(default=None, min_length=1, max_length=100)
    is_active: Optional[bool] = None
    category_id: Optional[UUID] = None
    images: Optional[List[str]] = None
    dimensions: Optional[DimensionsSchema] = None
    features: Optional[List[ProductFeatureSchema]] = None
    variants: Optional[List[ProductVariantCreate]] = None


class ProductListQuery(PaginationQuery):
    category_id: Optional[UUID] = None
    with_images: bool = True
    with_features: bool = True
    with_variants: bool = True


class DimensionsResponse(BaseModel):
    length: str
    width: str
    height: str
    depth: Optional[str] = None
    diameter: Optional[str] = None
    unit: str


class ProductVariantResponse(BaseModel):
    sku: str
    price: str
    available_quantity: int
    color: str
    color_code: str
    dimensions: Optional[DimensionsResponse] = None


class ProductResponse(BaseModel):
    """
    Schema for returning product data in API responses.
    Decimal values are strings.
    """

    id: UUID
    name: str
    sku: str
    slug: str
    brand: str
    origin: str
    description: str
    price: str
    is_active: bool
    category_id: UUID
    created_at: datetime
    updated_at: datetime
    images: Optional[List[str]] = None
    features: Optional[List[ProductFeatureSchema]] = None
    variants: Optional[List[ProductVariantResponse]] = None
    dimensions: Optional[DimensionsResponse] = None


class ProductListResponse(BaseModel):
    """
    Response model for returning a paginated list of products.
    """

    count: int
    pages: int
    data: List[ProductResponse]


###### Color schemas ############
class ColorCreate(BaseModel):
    color_code: str = Field(..., min_length=1, max_length=50)
    color_name: str = Field(..., min_length=1, max_length=100)


class ColorUpdate(BaseModel):
    color_code: Optional[str] = Field(default=None, min_length=1, max_length=50)
    color_name: Optional[str] = Field(default=None, min_length=1, max_length=100)


class ColorResponse(BaseModel):
    id: UUID
    color_code: str
    color_name: str

    class Config:
        from_attributes = True


###### File schemas ############
class UploadImageResponse(BaseModel):
    file_name: str
    url: str


class UploadImagesResponse(BaseModel):
    file_names: List[str]
    file_urls: List[str]
