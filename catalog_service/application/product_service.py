import math
from collections import Counter
from datetime import datetime
from typing import List, Optional, Sequence, Type, Union
from uuid import UUID

from sqlalchemy.orm import selectinload
from sqlmodel import Session, col, func, or_, select

from catalog_service.application.color_service import ColorService
from catalog_service.application.mappers import ProductMapper
from catalog_service.application.media_service import (
    ImageFile,
    MediaService,
    validate_images,
)
from catalog_service.application.pricing import parse_decimal, parse_optional_decimal
from catalog_service.config.logger_config import log
from catalog_service.core.exceptions import (
    CategoryNotFoundError,
    DuplicateVariantSkuError,
    MediaUploadError,
    MissingImagesError,
    MissingVariantsError,
    ProductAlreadyExistsError,
    ProductNotFoundError,
    ProductVariantAlreadyExistsError,
)
from catalog_service.domain.models import (
    Category,
    EntityType,
    Product,
    ProductDimensions,
    ProductFeature,
    ProductVariant,
    ProductVariantDimension,
)
from catalog_service.infrastructure.database.session import transaction
from catalog_service.interfaces.http.schemas import (
    DimensionsSchema,
    ProductCreate,
    ProductFeatureSchema,
    ProductListQuery,
    ProductListResponse,
    ProductResponse,
    ProductUpdate,
    ProductVariantCreate,
)

# Handled separately from the scalar columns on update
NESTED_FIELDS = ("images", "dimensions", "features", "variants")


def product_load_options(
    with_images: bool = True, with_features: bool = True, with_variants: bool = True
) -> list:
    loaders = [selectinload(Product.dimensions)]
    if with_images:
        loaders.append(selectinload(Product.images))
    if with_features:
        loaders.append(selectinload(Product.features))
    if with_variants:
        loaders.append(selectinload(Product.variants).selectinload(ProductVariant.color))
        loaders.append(
            selectinload(Product.variants).selectinload(ProductVariant.dimensions)
        )
    return loaders


class ProductService:
    """
    Service class for handling product-related business logic.
    A product is written together with its features, dimensions and variants in
    one transaction; its images are uploaded once that transaction has committed.
    """

    def __init__(self, session: Session, media_service: MediaService):
        """
        Initialize the service with a database session.
        Args:
            session: SQLModel session for database operations.
            media_service: Orchestrator for the product's images.
        """
        self.session = session
        self.media_service = media_service
        self.color_service = ColorService(session)

    def create(
        self, product_create: ProductCreate, files: Sequence[ImageFile] = ()
    ) -> Product:
        """
        Create a new product with its variants, then upload its images.
        Args:
            product_create: ProductCreate schema with validated data.
            files: Product images; at least one is required.
        Returns:
            Created Product object.
        Raises:
            MissingVariantsError, DuplicateVariantSkuError, MissingImagesError:
                If the request is incomplete.
            ProductAlreadyExistsError: If the name, SKU or slug is taken.
            ProductVariantAlreadyExistsError: If a variant SKU is taken.
            CategoryNotFoundError: If the category does not exist.
            MediaUploadError: If the product was saved but its images were not.
        """
        log.debug("Creating product", name=product_create.name)

        if not product_create.variants:
            raise MissingVariantsError()
        self._check_duplicate_skus(product_create.variants)
        if not files:
            raise MissingImagesError()
        validate_images(files)

        self._ensure_unique(product_create.name, product_create.sku, product_create.slug)
        self._ensure_variant_skus_free([v.sku for v in product_create.variants])
        self._ensure_category(product_create.category_id)

        product = Product(
            name=product_create.name,
            sku=product_create.sku,
            slug=product_create.slug,
            brand=product_create.brand,
            origin=product_create.origin,
            description=product_create.description,
            price=parse_decimal(product_create.price),
            is_active=product_create.is_active,
            category_id=product_create.category_id,
        )

        with transaction(self.session, "creating product"):
            self.session.add(product)
            product.features = self._build_features(product_create.features)
            if product_create.dimensions:
                product.dimensions = self._build_dimensions(
                    ProductDimensions, product_create.dimensions
                )
            product.variants = [
                self._build_variant(variant) for variant in product_create.variants
            ]

        log.info(
            "Product created successfully",
            product_id=str(product.id),
            name=product.name,
            variants=len(product.variants),
        )

        try:
            self.media_service.upload_images(EntityType.PRODUCT, product.id, files)
        except MediaUploadError as e:
            log.error(
                "Product saved without images",
                product_id=str(product.id),
                error=str(e),
            )
            raise MediaUploadError(
                "Product was saved without its images. "
                "Please upload them again by updating the product.",
                e.original_exception,
            ) from e

        return product

    def find_all(self, query: ProductListQuery) -> ProductListResponse:
        """
        List products ordered by name.
        Returns:
            count, pages and the requested page of products.
        """
        log.debug("Listing products", q=query.q, limit=query.limit, offset=query.offset)

        statement = select(Product)
        if query.q:
            statement = statement.where(col(Product.name).ilike(f"%{query.q}%"))
        if query.category_id:
            statement = statement.where(Product.category_id == query.category_id)

        count = self.session.exec(
            select(func.count()).select_from(statement.subquery())
        ).one()

        statement = (
            statement.options(
                *product_load_options(
                    query.with_images, query.with_features, query.with_variants
                )
            )
            .order_by(Product.name)
            .offset(query.offset)
            .limit(query.limit)
        )
        products = self.session.exec(statement).all()

        data = [
            ProductMapper.to_presentation(
                product, query.with_images, query.with_features, query.with_variants
            )
            for product in products
        ]
        log.info("Products listed successfully", count=len(data), total=count)
        return ProductListResponse(
            count=count, pages=math.ceil(count / query.limit), data=data
        )

    def find_one(self, product_id: UUID) -> ProductResponse:
        """
        Raises:
            ProductNotFoundError: If product does not exist.
        """
        log.debug("Fetching product by ID", product_id=str(product_id))
        product = self.session.exec(
            select(Product)
            .where(Product.id == product_id)
            .options(*product_load_options())
        ).first()
        if not product:
            log.warning("Product not found", product_id=str(product_id))
            raise ProductNotFoundError()
        return ProductMapper.to_presentation(product)

    def update(
        self,
        product_id: UUID,
        product_update: ProductUpdate,
        files: Sequence[ImageFile] = (),
    ) -> Product:
        """
        Update an existing product.
        Dimensions are replaced when given and removed otherwise; features and
        variants are replaced when a non-empty list is given. `images` lists the
        stored references to keep alongside newly uploaded files.
        Raises:
            ProductNotFoundError: If product does not exist.
            ProductAlreadyExistsError: If the new name, SKU or slug is taken.
            CategoryNotFoundError: If the new category does not exist.
        """
        update_data = product_update.model_dump(
            exclude_unset=True, exclude=set(NESTED_FIELDS)
        )
        log.debug(
            "Updating product", product_id=str(product_id), fields=list(update_data)
        )

        product = self._get(product_id)
        existing_images = product_update.images or []
        variants = product_update.variants or []
        features = product_update.features or []

        if files:
            validate_images(files)
        if variants:
            self._check_duplicate_skus(variants)
            self._ensure_variant_skus_free(
                [v.sku for v in variants], exclude_product_id=product_id
            )
        self._ensure_unique(
            update_data.get("name"),
            update_data.get("sku"),
            update_data.get("slug"),
            exclude_id=product_id,
        )
        category_id = update_data.get("category_id")
        if category_id is not None and category_id != product.category_id:
            self._ensure_category(category_id)

        with transaction(self.session, "updating product"):
            for key, value in update_data.items():
                if value is None:
                    continue
                if key == "price":
                    value = parse_decimal(value)
                setattr(product, key, value)
            product.updated_at = datetime.utcnow()
            self.session.add(product)

            # product_id is unique on dimensions: delete before insert
            if product.dimensions is not None:
                product.dimensions = None
                self.session.flush()
            if product_update.dimensions:
                product.dimensions = self._build_dimensions(
                    ProductDimensions, product_update.dimensions
                )

            if features:
                product.features = self._build_features(features)

            if variants:
                product.variants = []
                self.session.flush()
                product.variants = [self._build_variant(v) for v in variants]

        if existing_images or files:
            try:
                self.media_service.replace_images(
                    EntityType.PRODUCT, product.id, existing_images, files
                )
            except MediaUploadError as e:
                log.error(
                    "Product updated without new images",
                    product_id=str(product.id),
                    error=str(e),
                )
                raise MediaUploadError(
                    "Product was updated without the new images. Please try again.",
                    e.original_exception,
                ) from e

        log.info("Product updated successfully", product_id=str(product.id))
        return product

    def remove(self, product_id: UUID) -> Product:
        """
        Delete a product with its child rows and, best-effort, its stored images.
        Returns:
            The deleted product.
        """
        log.info("Deleting product", product_id=str(product_id))
        product = self._get(product_id)

        with transaction(self.session, "deleting product"):
            self.session.delete(product)

        try:
            self.media_service.delete_images_by_entity(EntityType.PRODUCT, product_id)
        except Exception:
            log.exception(
                "Failed to delete images of removed product",
                product_id=str(product_id),
            )

        log.info("Product deleted", product_id=str(product_id))
        return product

    # --- Private Helper Methods ---

    def _get(self, product_id: UUID) -> Product:
        product = self.session.get(Product, product_id)
        if not product:
            log.warning("Product not found", product_id=str(product_id))
            raise ProductNotFoundError()
        return product

    def _ensure_unique(
        self,
        name: Optional[str],
        sku: Optional[str],
        slug: Optional[str],
        exclude_id: Optional[UUID] = None,
    ) -> None:
        candidates = [("name", name), ("sku", sku), ("slug", slug)]
        conditions = [
            getattr(Product, field) == value for field, value in candidates if value
        ]
        if not conditions:
            return

        query = select(Product).where(or_(*conditions))
        if exclude_id is not None:
            query = query.where(Product.id != exclude_id)

        existing = self.session.exec(query).all()
        for field, value in candidates:
            if value and any(getattr(p, field) == value for p in existing):
                log.warning("Product already exists", field=field, value=value)
                raise ProductAlreadyExistsError(field)

    def _check_duplicate_skus(self, variants: Sequence[ProductVariantCreate]) -> None:
        counts = Counter(variant.sku for variant in variants)
        duplicates = [sku for sku, total in counts.items() if total > 1]
        if duplicates:
            raise DuplicateVariantSkuError(duplicates)

    def _ensure_variant_skus_free(
        self, skus: List[str], exclude_product_id: Optional[UUID] = None
    ) -> None:
        query = select(ProductVariant.sku).where(col(ProductVariant.sku).in_(skus))
        if exclude_product_id is not None:
            query = query.where(ProductVariant.product_id != exclude_product_id)
        taken = self.session.exec(query).first()
        if taken is not None:
            log.warning("Product variant SKU already exists", sku=taken)
            raise ProductVariantAlreadyExistsError(taken)

    def _ensure_category(self, category_id: UUID) -> None:
        if not self.session.get(Category, category_id):
            log.warning("Category not found", category_id=str(category_id))
            raise CategoryNotFoundError()

    def _build_features(
        self, features: Sequence[ProductFeatureSchema]
    ) -> List[ProductFeature]:
        return [ProductFeature(name=f.name, value=f.value) for f in features]

    def _build_dimensions(
        self,
        model: Type[Union[ProductDimensions, ProductVariantDimension]],
        dimensions: DimensionsSchema,
    ) -> Union[ProductDimensions, ProductVariantDimension]:
        return model(
            length=parse_decimal(dimensions.length),
            width=parse_decimal(dimensions.width),
            height=parse_decimal(dimensions.height),
            depth=parse_optional_decimal(dimensions.depth),
            diameter=parse_optional_decimal(dimensions.diameter),
            unit=dimensions.unit.value,
        )

    def _build_variant(self, variant_create: ProductVariantCreate) -> ProductVariant:
        color = self.color_service.get_or_create(
            variant_create.color_name, variant_create.color_code
        )
        variant = ProductVariant(
            sku=variant_create.sku,
            available_quantity=variant_create.available_quantity,
            price=parse_decimal(variant_create.price),
            color_id=color.id,
        )
        if variant_create.dimensions:
            variant.dimensions = self._build_dimensions(
                ProductVariantDimension, variant_create.dimensions
            )
        return variant
