from typing import Annotated, List, Optional
from uuid import UUID

from fastapi import (
    APIRouter,
    Depends,
    File,
    Form,
    HTTPException,
    Path,
    Query,
    UploadFile,
    status,
)

from catalog_service.application.mappers import ProductMapper
from catalog_service.application.product_service import ProductService
from catalog_service.config.logger_config import log
from catalog_service.core.exceptions import (
    ConflictError,
    DatabaseError,
    ExternalServiceError,
    InvalidInputError,
    NotFoundError,
)
from catalog_service.interfaces.http.dependencies import (
    get_product_service,
    parse_payload,
    read_upload_files,
)
from catalog_service.interfaces.http.schemas import (
    ProductCreate,
    ProductListQuery,
    ProductListResponse,
    ProductResponse,
    ProductUpdate,
)

router = APIRouter(prefix="/products", tags=["products"])


@router.post("", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
async def create_product(
    payload: str = Form(..., description="ProductCreate as JSON"),
    files: Optional[List[UploadFile]] = File(None, description="1 to 4 images"),
    product_service: ProductService = Depends(get_product_service),
):
    """
    Create a new product with its variants, features and dimensions.
    - Multipart: `payload` (JSON) plus at least one image in `files`
    - Returns created product
    """
    product_create = parse_payload(ProductCreate, payload)
    try:
        log.info(
            "Create product request",
            name=product_create.name,
            sku=product_create.sku,
            category_id=str(product_create.category_id),
        )

        images = await read_upload_files(files)
        product = product_service.create(product_create, images)
        return ProductMapper.to_presentation(product)

    except ConflictError as e:
        log.warning("Product creation failed: conflict", error=e.message)
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.message) from e

    except NotFoundError as e:
        log.warning("Product creation failed: not found", error=e.message)
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message) from e

    except InvalidInputError as e:
        log.warning("Product creation failed: invalid input", error=e.message)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail=e.message
        ) from e

    except (ExternalServiceError, DatabaseError) as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=e.message
        ) from e

    except Exception as e:
        log.exception("Unexpected error during product creation")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error",
        ) from e


@router.get("", response_model=ProductListResponse)
async def list_products(
    query: Annotated[ProductListQuery, Query()],
    product_service: ProductService = Depends(get_product_service),
):
    """
    List products ordered by name.
    - Filters: q, category_id
    - Includes: with_images, with_features, with_variants (all on by default)
    """
    try:
        log.info(
            "List products request",
            q=query.q,
            category_id=str(query.category_id) if query.category_id else None,
            limit=query.limit,
            offset=query.offset,
        )
        return product_service.find_all(query)

    except Exception as e:
        log.exception("Unexpected error during list products")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error",
        ) from e


@router.get("/{product_id}", response_model=ProductResponse)
async def get_product(
    product_id: UUID = Path(..., description="The UUID of the product to retrieve"),
    product_service: ProductService = Depends(get_product_service),
):
    """
    Retrieve a product by ID with images, features, variants and dimensions.
    """
    try:
        log.info("Get product request", product_id=str(product_id))
        return product_service.find_one(product_id)

    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message) from e

    except Exception as e:
        log.exception("Unexpected error during get product")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error",
        ) from e


@router.patch("/{product_id}", response_model=ProductResponse)
async def update_product(
    product_id: UUID = Path(..., description="The UUID of the product to update"),
    payload: str = Form("{}", description="ProductUpdate as JSON"),
    files: Optional[List[UploadFile]] = File(None, description="Up to 4 images"),
    product_service: ProductService = Depends(get_product_service),
):
    """
    Update an existing product.
    - Dimensions are removed when not sent
    - Features and variants are replaced when a non-empty list is sent
    - Returns updated product
    """
    product_update = parse_payload(ProductUpdate, payload)
    try:
        log.info(
            "Update product request",
            product_id=str(product_id),
            fields=list(product_update.model_dump(exclude_unset=True)),
        )

        images = await read_upload_files(files)
        product = product_service.update(product_id, product_update, images)
        return ProductMapper.to_presentation(product)

    except NotFoundError as e:
        log.warning("Product update failed: not found", error=e.message)
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message) from e

    except ConflictError as e:
        log.warning("Product update failed: conflict", error=e.message)
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.message) from e

    except InvalidInputError as e:
        log.warning("Product update failed: invalid input", error=e.message)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail=e.message
        ) from e

    except (ExternalServiceError, DatabaseError) as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=e.message
        ) from e

    except Exception as e:
        log.exception("Unexpected error during product update")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error",
        ) from e


@router.delete("/{product_id}", response_model=ProductResponse)
async def delete_product(
    product_id: UUID = Path(..., description="The UUID of the product to delete"),
    product_service: ProductService = Depends(get_product_service),
):
    """
    Delete a product, its variants and its stored images.
    - Returns the deleted product
    """
    try:
        log.info("Delete product request", product_id=str(product_id))
        product = product_service.remove(product_id)
        return ProductMapper.to_presentation(
            product, with_images=False, with_features=False, with_variants=False
        )

    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message) from e

    except DatabaseError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=e.message
        ) from e

    except Exception as e:
        log.exception("Unexpected error during product deletion")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error",
        ) from e
