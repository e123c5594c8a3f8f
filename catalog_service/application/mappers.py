from typing import Dict, Optional, Union
from uuid import UUID

from catalog_service.application.pricing import format_decimal
from catalog_service.domain.models import (
    Category,
    Product,
    ProductDimensions,
    ProductVariant,
    ProductVariantDimension,
)
from catalog_service.interfaces.http.schemas import (
    CategoryIncludeOptions,
    CategoryProductSummary,
    CategoryResponse,
    DimensionsResponse,
    ProductFeatureSchema,
    ProductResponse,
    ProductVariantResponse,
)


class CategoryMapper:
    @staticmethod
    def to_presentation(
        category: Category,
        options: Optional[CategoryIncludeOptions] = None,
        product_counts: Optional[Dict[UUID, int]] = None,
        include_children: bool = True,
    ) -> CategoryResponse:
        """
        Build the API view of a category.
        Relations are only read when the matching include flag is set; children
        are mapped one level deep with the same flags.
        """
        options = options or CategoryIncludeOptions()
        product_counts = product_counts or {}

        response = CategoryResponse(
            id=category.id,
            name=category.name,
            slug=category.slug,
            description=category.description,
            is_active=category.is_active,
            parent_id=category.parent_id,
            created_at=category.created_at,
            updated_at=category.updated_at,
        )

        if options.with_images:
            response.images = [image.image for image in category.images]
        if options.with_products:
            response.products = [
                CategoryProductSummary(
                    id=product.id,
                    name=product.name,
                    slug=product.slug,
                    sku=product.sku,
                    price=format_decimal(product.price),
                    is_active=product.is_active,
                )
                for product in category.products
            ]
        if options.with_product_count:
            response.product_count = product_counts.get(category.id, 0)
        if include_children:
            response.children = [
                CategoryMapper.to_presentation(
                    child, options, product_counts, include_children=False
                )
                for child in category.children
            ]
        return response


class ProductMapper:
    @staticmethod
    def dimensions_to_presentation(
        dimensions: Optional[Union[ProductDimensions, ProductVariantDimension]],
    ) -> Optional[DimensionsResponse]:
        if dimensions is None:
            return None
        return DimensionsResponse(
            length=format_decimal(dimensions.length),
            width=format_decimal(dimensions.width),
            height=format_decimal(dimensions.height),
            depth=format_decimal(dimensions.depth),
            diameter=format_decimal(dimensions.diameter),
            unit=dimensions.unit,
        )

    @staticmethod
    def variant_to_presentation(variant: ProductVariant) -> ProductVariantResponse:
        return ProductVariantResponse(
            sku=variant.sku,
            price=format_decimal(variant.price),
            available_quantity=variant.available_quantity,
            color=variant.color.color_name,
            color_code=variant.color.color_code,
            dimensions=ProductMapper.dimensions_to_presentation(variant.dimensions),
        )

    @staticmethod
    def to_presentation(
        product: Product,
        with_images: bool = True,
        with_features: bool = True,
        with_variants: bool = True,
    ) -> ProductResponse:
        """Build the API view of a product; decimals become strings."""
        response = ProductResponse(
            id=product.id,
            name=product.name,
            sku=product.sku,
            slug=product.slug,
            brand=product.brand,
            origin=product.origin,
            description=product.description,
            price=format_decimal(product.price),
            is_active=product.is_active,
            category_id=product.category_id,
            created_at=product.created_at,
            updated_at=product.updated_at,
            dimensions=ProductMapper.dimensions_to_presentation(product.dimensions),
        )
        if with_images:
            response.images = [image.image for image in product.images]
        if with_features:
            response.features = [
                ProductFeatureSchema(name=feature.name, value=feature.value)
                for feature in product.features
            ]
        if with_variants:
            response.variants = [
                ProductMapper.variant_to_presentation(variant)
                for variant in sorted(product.variants, key=lambda v: v.sku)
            ]
        return response
