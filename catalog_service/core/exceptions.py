from typing import Iterable, Optional


class CatalogError(Exception):
    """
    Base class for all errors raised by the catalog service.
    Routers convert it to an HTTPException before it reaches the client.
    """

    def __init__(self, message: str, original_exception: Optional[Exception] = None):
        super().__init__(message)
        self.message = message
        self.original_exception = original_exception


# ------------------------
# Kinds (one HTTP status each)
# ------------------------


class NotFoundError(CatalogError):
    """Raised when a referenced resource does not exist."""

    pass


class ConflictError(CatalogError):
    """Raised when a write collides with existing data."""

    pass


class InvalidInputError(CatalogError):
    """
    Raised when a invalid input is passed.
    Covers referential and structural violations detected after request validation.
    """

    pass


class DatabaseError(CatalogError):
    """
    Raised when a there is a database error.
    """

    pass


class ExternalServiceError(CatalogError):
    """
    Raised when there is an unexpected error from an external service.
    """

    def __init__(
        self,
        service_name: str,
        message: str = "Service call failed",
        original_exception: Optional[Exception] = None,
    ):
        super().__init__(f"{service_name} error: {message}", original_exception)
        self.service_name = service_name


# ------------------------
# Store translation
# ------------------------


class ResourceNotFoundError(NotFoundError):
    """Raised when the store reports that a related record is missing."""

    def __init__(self, resource: str = "Resource", **kwargs):
        super().__init__(f"{resource} not found", **kwargs)
        self.resource = resource


class ForeignKeyViolationError(InvalidInputError):
    """Raised when a write violates a foreign key constraint."""

    def __init__(self, message: str = "Foreign key constraint failed", **kwargs):
        super().__init__(message, **kwargs)


class UniqueViolationError(ConflictError):
    """Raised when the store rejects a duplicate value."""

    def __init__(self, message: str = "Resource already exists", **kwargs):
        super().__init__(message, **kwargs)


# ------------------------
# Category-related errors
# ------------------------


class CategoryNotFoundError(ResourceNotFoundError):
    """
    Raised when a category with the given ID does not exist.
    """

    def __init__(self, **kwargs):
        super().__init__("Category", **kwargs)


class ParentCategoryNotFoundError(ResourceNotFoundError):
    """Raised when the requested parent category does not exist."""

    def __init__(self, **kwargs):
        super().__init__("Parent category", **kwargs)


class CategoryAlreadyExistsError(ConflictError):
    """
    Raised when another category already uses the requested name or slug.
    """

    def __init__(self, field: str):
        super().__init__(f"A category with this {field} already exists")
        self.field = field


class CategoryHasProductsError(ConflictError):
    """Raised when deleting a category that still owns products."""

    def __init__(self):
        super().__init__("Cannot delete category because it has associated products")


class CategoryHierarchyError(InvalidInputError):
    """
    Raised when a parent assignment would break the category hierarchy.
    Subclasses carry distinct user-facing messages.
    """

    pass


class SelfParentError(CategoryHierarchyError):
    def __init__(self):
        super().__init__("A category cannot be its own parent")


class CircularReferenceError(CategoryHierarchyError):
    def __init__(self):
        super().__init__("Circular reference detected in category hierarchy")


class MaxDepthExceededError(CategoryHierarchyError):
    def __init__(self):
        super().__init__("Maximum category depth exceeded")


class ParentAlreadyNestedError(CategoryHierarchyError):
    def __init__(self):
        super().__init__(
            "Parent category is already a subcategory; only two levels are allowed"
        )


class CategoryHasChildrenError(CategoryHierarchyError):
    def __init__(self):
        super().__init__(
            "A category with subcategories cannot be nested under another category"
        )


# ------------------------
# Product-related errors
# ------------------------


class ProductNotFoundError(ResourceNotFoundError):
    """Raised when a product with the given ID does not exist."""

    def __init__(self, **kwargs):
        super().__init__("Product", **kwargs)


class ProductAlreadyExistsError(ConflictError):
    """Raised when another product already uses the requested name, SKU or slug."""

    def __init__(self, field: str):
        super().__init__(f"A product with this {field} already exists")
        self.field = field


class ProductVariantAlreadyExistsError(ConflictError):
    """Raised when a variant SKU is already used by another product variant."""

    def __init__(self, sku: str):
        super().__init__(f"Product variant with SKU '{sku}' already exists")
        self.sku = sku


class MissingVariantsError(InvalidInputError):
    def __init__(self):
        super().__init__("A product requires at least one variant")


class MissingImagesError(InvalidInputError):
    def __init__(self):
        super().__init__("A product requires at least one image")


class DuplicateVariantSkuError(InvalidInputError):
    def __init__(self, skus: Iterable[str]):
        self.skus = sorted(skus)
        super().__init__(f"Duplicate variant SKUs in request: {', '.join(self.skus)}")


class InvalidPriceError(InvalidInputError):
    """Raised when a decimal string cannot be normalized."""

    def __init__(self, value: str):
        super().__init__(f"Invalid numeric value: '{value}'")
        self.value = value


# ------------------------
# Color-related errors
# ------------------------


class ColorNotFoundError(ResourceNotFoundError):
    def __init__(self, **kwargs):
        super().__init__("Color", **kwargs)


class ColorAlreadyExistsError(ConflictError):
    def __init__(self):
        super().__init__("Color already exists")


class ColorInUseError(ConflictError):
    def __init__(self):
        super().__init__("Cannot delete color because it is used by product variants")


# ------------------------
# Media-related errors
# ------------------------


class InvalidMediaError(InvalidInputError):
    """Raised when media validation fails (e.g., wrong file type)."""

    def __init__(self, message: str = "Invalid media data"):
        super().__init__(message)


class MediaUploadError(ExternalServiceError):
    """Raised when media upload fails."""

    def __init__(
        self,
        message: str = "Error uploading images. Please try again.",
        original_exception: Optional[Exception] = None,
    ):
        super().__init__("storage", message, original_exception)
        self.message = message


# ------------------------
# Token-related errors
# ------------------------


class TokenError(CatalogError):
    """Base class for token-related failures."""

    pass


class TokenExpiredError(TokenError):
    """Raised when a token's expiration time has passed."""

    pass


class TokenInvalidError(TokenError):
    """Raised when a token is malformed or has an invalid signature."""

    pass


class TokenMissingClaimError(TokenError):
    """Raised when a required claim (e.g. 'sub') is missing."""

    pass
