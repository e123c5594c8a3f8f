from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Path, status

from catalog_service.application.color_service import ColorService
from catalog_service.config.logger_config import log
from catalog_service.core.exceptions import ConflictError, DatabaseError, NotFoundError
from catalog_service.interfaces.http.dependencies import get_color_service
from catalog_service.interfaces.http.schemas import (
    ColorCreate,
    ColorResponse,
    ColorUpdate,
)

router = APIRouter(prefix="/colors", tags=["colors"])


@router.post("", response_model=ColorResponse, status_code=status.HTTP_201_CREATED)
async def create_color(
    color_create: ColorCreate,
    color_service: ColorService = Depends(get_color_service),
):
    try:
        log.info("Create color request", color_name=color_create.color_name)
        color = color_service.create(color_create)
        return ColorResponse.model_validate(color)

    except ConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.message) from e

    except DatabaseError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=e.message
        ) from e


@router.get("", response_model=List[ColorResponse])
async def list_colors(color_service: ColorService = Depends(get_color_service)):
    return [ColorResponse.model_validate(color) for color in color_service.find_all()]


@router.get("/{color_id}", response_model=ColorResponse)
async def get_color(
    color_id: UUID = Path(..., description="The UUID of the color to retrieve"),
    color_service: ColorService = Depends(get_color_service),
):
    try:
        return ColorResponse.model_validate(color_service.find_one(color_id))

    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message) from e


@router.patch("/{color_id}", response_model=ColorResponse)
async def update_color(
    color_update: ColorUpdate,
    color_id: UUID = Path(..., description="The UUID of the color to update"),
    color_service: ColorService = Depends(get_color_service),
):
    try:
        log.info("Update color request", color_id=str(color_id))
        color = color_service.update(color_id, color_update)
        return ColorResponse.model_validate(color)

    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message) from e

    except ConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.message) from e

    except DatabaseError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=e.message
        ) from e


@router.delete("/{color_id}", response_model=ColorResponse)
async def delete_color(
    color_id: UUID = Path(..., description="The UUID of the color to delete"),
    color_service: ColorService = Depends(get_color_service),
):
    """
    Delete a color that no variant uses.
    """
    try:
        log.info("Delete color request", color_id=str(color_id))
        return ColorResponse.model_validate(color_service.remove(color_id))

    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message) from e

    except ConflictError as e:
        log.warning("Color deletion failed: in use", color_id=str(color_id))
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.message) from e

    except DatabaseError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=e.message
        ) from e
