import math
from datetime import datetime
from typing import Dict, List, Optional, Sequence
from uuid import UUID

from sqlalchemy.orm import selectinload
from sqlmodel import Session, col, func, select

from catalog_service.application.category_hierarchy import CategoryHierarchyValidator
from catalog_service.application.mappers import CategoryMapper
from catalog_service.application.media_service import (
    ImageFile,
    MediaService,
    validate_images,
)
from catalog_service.config.logger_config import log
from catalog_service.core.exceptions import (
    CategoryHasProductsError,
    CategoryNotFoundError,
    MediaUploadError,
)
from catalog_service.domain.models import Category, EntityType, Product
from catalog_service.infrastructure.database.session import transaction
from catalog_service.interfaces.http.schemas import (
    CategoryCreate,
    CategoryIncludeOptions,
    CategoryListQuery,
    CategoryListResponse,
    CategoryResponse,
    CategoryUpdate,
)

# Columns that may be cleared with an explicit null
NULLABLE_FIELDS = {"parent_id", "description"}


def category_load_options(options: CategoryIncludeOptions) -> list:
    """
    Loader options for a category query.
    Children are always loaded, with the same relations one level down.
    """
    loaders = [selectinload(Category.children)]
    if options.with_images:
        loaders.append(selectinload(Category.images))
        loaders.append(selectinload(Category.children).selectinload(Category.images))
    if options.with_products:
        loaders.append(selectinload(Category.products))
        loaders.append(
            selectinload(Category.children).selectinload(Category.products)
        )
    return loaders


class CategoryService:
    """
    Service class for handling category-related business logic.
    Encapsulates CRUD operations for categories with two-level hierarchy support
    and their image sets.
    """

    def __init__(self, session: Session, media_service: MediaService):
        """
        Initialize the service with a database session.
        Args:
            session: SQLModel session for database operations.
            media_service: Orchestrator for the category's images.
        """
        self.session = session
        self.media_service = media_service
        self.validator = CategoryHierarchyValidator(session)

    def create(
        self, category_create: CategoryCreate, files: Sequence[ImageFile] = ()
    ) -> Category:
        """
        Create a new category, then upload its images.
        Args:
            category_create: CategoryCreate schema with new data.
            files: Optional images for the category.
        Returns:
            Created Category object.
        Raises:
            CategoryAlreadyExistsError: If the name or slug is taken.
            ParentCategoryNotFoundError: If the parent does not exist.
            CategoryHierarchyError: If the parent cannot take children.
            MediaUploadError: If the category was saved but its images were not.
        """
        log.debug("Creating category", name=category_create.name)

        if files:
            validate_images(files)
        self.validator.validate_uniqueness(category_create.name, category_create.slug)
        if category_create.parent_id:
            self.validator.validate_parent(category_create.parent_id)

        category = Category(**category_create.model_dump())
        with transaction(self.session, "creating category"):
            self.session.add(category)

        log.info(
            "Category created successfully",
            category_id=str(category.id),
            name=category.name,
        )

        if files:
            try:
                self.media_service.upload_images(
                    EntityType.CATEGORY, category.id, files
                )
            except MediaUploadError as e:
                log.error(
                    "Category saved without images",
                    category_id=str(category.id),
                    error=str(e),
                )
                raise MediaUploadError(
                    "Category was saved without its images. "
                    "Please upload them again by updating the category.",
                    e.original_exception,
                ) from e

        return category

    def find_all(self, query: CategoryListQuery) -> CategoryListResponse:
        """
        List categories ordered by name, each with its direct children.
        Returns:
            count, pages and the requested page of categories.
        """
        log.debug(
            "Listing categories", q=query.q, limit=query.limit, offset=query.offset
        )

        statement = select(Category)
        if query.q:
            statement = statement.where(col(Category.name).ilike(f"%{query.q}%"))
        if query.only_root:
            statement = statement.where(col(Category.parent_id).is_(None))
        if query.only_children:
            statement = statement.where(col(Category.parent_id).is_not(None))
        if query.exclude_id:
            statement = statement.where(Category.id != query.exclude_id)

        count = self.session.exec(
            select(func.count()).select_from(statement.subquery())
        ).one()

        statement = (
            statement.options(*category_load_options(query))
            .order_by(Category.name)
            .offset(query.offset)
            .limit(query.limit)
        )
        categories = self.session.exec(statement).all()

        product_counts = (
            self._count_products(categories) if query.with_product_count else {}
        )
        data = [
            CategoryMapper.to_presentation(category, query, product_counts)
            for category in categories
        ]

        log.info("Categories listed successfully", count=len(data), total=count)
        return CategoryListResponse(
            count=count, pages=math.ceil(count / query.limit), data=data
        )

    def find_one(
        self, category_id: UUID, options: Optional[CategoryIncludeOptions] = None
    ) -> CategoryResponse:
        """
        Raises:
            CategoryNotFoundError: If category does not exist.
        """
        options = options or CategoryIncludeOptions()
        log.debug("Fetching category by ID", category_id=str(category_id))

        category = self.session.exec(
            select(Category)
            .where(Category.id == category_id)
            .options(*category_load_options(options))
        ).first()
        if not category:
            log.warning("Category not found", category_id=str(category_id))
            raise CategoryNotFoundError()

        product_counts = (
            self._count_products([category]) if options.with_product_count else {}
        )
        return CategoryMapper.to_presentation(category, options, product_counts)

    def update(
        self,
        category_id: UUID,
        category_update: CategoryUpdate,
        files: Sequence[ImageFile] = (),
    ) -> Category:
        """
        Update an existing category.
        `images` in the payload lists the stored references to keep; together with
        newly uploaded files it becomes the category's whole image set.
        Raises:
            CategoryNotFoundError: If category does not exist.
            CategoryAlreadyExistsError: If new name or slug is taken.
            CategoryHierarchyError: If the new parent breaks the hierarchy.
        """
        update_data = category_update.model_dump(exclude_unset=True)
        log.debug(
            "Updating category", category_id=str(category_id), update_data=update_data
        )

        category = self._get(category_id)
        existing_images = update_data.pop("images", None) or []

        if files:
            validate_images(files)
        self.validator.validate_uniqueness(
            update_data.get("name"), update_data.get("slug"), exclude_id=category_id
        )

        if "parent_id" in update_data and update_data["parent_id"] != category.parent_id:
            if update_data["parent_id"] is not None:
                self.validator.validate_parent(update_data["parent_id"], category_id)

        with transaction(self.session, "updating category"):
            for key, value in update_data.items():
                if value is None and key not in NULLABLE_FIELDS:
                    continue
                setattr(category, key, value)
            category.updated_at = datetime.utcnow()
            self.session.add(category)

        if existing_images or files:
            try:
                self.media_service.replace_images(
                    EntityType.CATEGORY, category.id, existing_images, files
                )
            except MediaUploadError as e:
                log.error(
                    "Category updated without new images",
                    category_id=str(category.id),
                    error=str(e),
                )
                raise MediaUploadError(
                    "Category was updated without the new images. Please try again.",
                    e.original_exception,
                ) from e

        log.info("Category updated successfully", category_id=str(category.id))
        return category

    def remove(self, category_id: UUID) -> Category:
        """
        Delete a category and, best-effort, its stored images.
        Returns:
            The deleted category.
        Raises:
            CategoryNotFoundError: If category does not exist.
            CategoryHasProductsError: If products still reference it.
            ForeignKeyViolationError: If it still has subcategories.
        """
        log.info("Deleting category", category_id=str(category_id))
        category = self._get(category_id)

        has_products = self.session.exec(
            select(Product.id).where(Product.category_id == category_id).limit(1)
        ).first()
        if has_products is not None:
            log.warning("Category has products", category_id=str(category_id))
            raise CategoryHasProductsError()

        with transaction(self.session, "deleting category"):
            self.session.delete(category)

        try:
            self.media_service.delete_images_by_entity(EntityType.CATEGORY, category_id)
        except Exception:
            log.exception(
                "Failed to delete images of removed category",
                category_id=str(category_id),
            )

        log.info("Category deleted", category_id=str(category_id))
        return category

    # --- Private Helper Methods ---

    def _get(self, category_id: UUID) -> Category:
        category = self.session.get(Category, category_id)
        if not category:
            log.warning("Category not found", category_id=str(category_id))
            raise CategoryNotFoundError()
        return category

    def _count_products(self, categories: Sequence[Category]) -> Dict[UUID, int]:
        ids: List[UUID] = []
        for category in categories:
            ids.append(category.id)
            ids.extend(child.id for child in category.children)
        if not ids:
            return {}

        rows = self.session.exec(
            select(Product.category_id, func.count(Product.id))
            .where(col(Product.category_id).in_(ids))
            .group_by(Product.category_id)
        ).all()
        return {category_id: total for category_id, total in rows}
