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

from catalog_service.application.category_service import CategoryService
from catalog_service.application.mappers import CategoryMapper
from catalog_service.config.logger_config import log
from catalog_service.core.exceptions import (
    ConflictError,
    DatabaseError,
    ExternalServiceError,
    InvalidInputError,
    NotFoundError,
)
from catalog_service.interfaces.http.dependencies import (
    get_category_service,
    parse_payload,
    read_upload_files,
)
from catalog_service.interfaces.http.schemas import (
    CategoryCreate,
    CategoryIncludeOptions,
    CategoryListQuery,
    CategoryListResponse,
    CategoryResponse,
    CategoryUpdate,
)

router = APIRouter(prefix="/categories", tags=["categories"])

WITH_IMAGES = CategoryIncludeOptions(with_images=True)


@router.post("", response_model=CategoryResponse, status_code=status.HTTP_201_CREATED)
async def create_category(
    payload: str = Form(..., description="CategoryCreate as JSON"),
    files: Optional[List[UploadFile]] = File(None, description="Up to 4 images"),
    category_service: CategoryService = Depends(get_category_service),
):
    """
    Create a new category.
    - Multipart: `payload` (JSON) plus optional `files`
    - Returns created category with its image references
    """
    category_create = parse_payload(CategoryCreate, payload)
    try:
        log.info(
            "Create category request",
            name=category_create.name,
            parent_id=str(category_create.parent_id)
            if category_create.parent_id
            else None,
        )

        images = await read_upload_files(files)
        category = category_service.create(category_create, images)
        return CategoryMapper.to_presentation(category, WITH_IMAGES)

    except ConflictError as e:
        log.warning("Category creation failed: conflict", error=e.message)
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.message) from e

    except NotFoundError as e:
        log.warning("Category creation failed: not found", error=e.message)
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message) from e

    except InvalidInputError as e:
        log.warning("Category creation failed: invalid input", error=e.message)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail=e.message
        ) from e

    except (ExternalServiceError, DatabaseError) as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=e.message
        ) from e

    except Exception as e:
        log.exception("Unexpected error during category creation")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error",
        ) from e


@router.get("", response_model=CategoryListResponse)
async def list_categories(
    query: Annotated[CategoryListQuery, Query()],
    category_service: CategoryService = Depends(get_category_service),
):
    """
    List categories ordered by name, each with its direct subcategories.
    - Filters: q, only_root, only_children, exclude_id
    - Includes: with_images, with_products, with_product_count
    """
    try:
        log.info(
            "List categories request",
            q=query.q,
            limit=query.limit,
            offset=query.offset,
        )
        return category_service.find_all(query)

    except Exception as e:
        log.exception("Unexpected error during list categories")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error",
        ) from e


@router.get("/{category_id}", response_model=CategoryResponse)
async def get_category(
    options: Annotated[CategoryIncludeOptions, Query()],
    category_id: UUID = Path(..., description="The UUID of the category to retrieve"),
    category_service: CategoryService = Depends(get_category_service),
):
    """
    Retrieve a category by ID, with its direct subcategories.
    """
    try:
        log.info("Get category request", category_id=str(category_id))
        return category_service.find_one(category_id, options)

    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message) from e

    except Exception as e:
        log.exception("Unexpected error during get category")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error",
        ) from e


@router.patch("/{category_id}", response_model=CategoryResponse)
async def update_category(
    category_id: UUID = Path(..., description="The UUID of the category to update"),
    payload: str = Form("{}", description="CategoryUpdate as JSON"),
    files: Optional[List[UploadFile]] = File(None, description="Up to 4 images"),
    category_service: CategoryService = Depends(get_category_service),
):
    """
    Update an existing category.
    - `images` in the payload lists stored references to keep; uploaded `files`
      are added to them
    - Returns updated category
    """
    category_update = parse_payload(CategoryUpdate, payload)
    try:
        log.info(
            "Update category request",
            category_id=str(category_id),
            fields=list(category_update.model_dump(exclude_unset=True)),
        )

        images = await read_upload_files(files)
        category = category_service.update(category_id, category_update, images)
        return CategoryMapper.to_presentation(category, WITH_IMAGES)

    except NotFoundError as e:
        log.warning("Category update failed: not found", error=e.message)
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message) from e

    except ConflictError as e:
        log.warning("Category update failed: conflict", error=e.message)
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.message) from e

    except InvalidInputError as e:
        log.warning("Category update failed: invalid input", error=e.message)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail=e.message
        ) from e

    except (ExternalServiceError, DatabaseError) as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=e.message
        ) from e

    except Exception as e:
        log.exception("Unexpected error during category update")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error",
        ) from e


@router.delete("/{category_id}", response_model=CategoryResponse)
async def delete_category(
    category_id: UUID = Path(..., description="The UUID of the category to delete"),
    category_service: CategoryService = Depends(get_category_service),
):
    """
    Delete a category and its stored images.
    - 409 while products reference it, 400 while it has subcategories
    - Returns the deleted category
    """
    try:
        log.info("Delete category request", category_id=str(category_id))
        category = category_service.remove(category_id)
        return CategoryMapper.to_presentation(category, include_children=False)

    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message) from e

    except ConflictError as e:
        log.warning("Category deletion failed: conflict", error=e.message)
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.message) from e

    except InvalidInputError as e:
        log.warning("Category deletion failed: invalid input", error=e.message)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail=e.message
        ) from e

    except DatabaseError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=e.message
        ) from e

    except Exception as e:
        log.exception("Unexpected error during category deletion")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error",
        ) from e
