from typing import List, Optional
from uuid import UUID

from sqlmodel import Session, or_, select

from catalog_service.config.logger_config import log
from catalog_service.core.exceptions import (
    ColorAlreadyExistsError,
    ColorInUseError,
    ColorNotFoundError,
)
from catalog_service.domain.models import Color, ProductVariant
from catalog_service.infrastructure.database.session import transaction
from catalog_service.interfaces.http.schemas import ColorCreate, ColorUpdate


class ColorService:
    """
    Service class for the color palette shared by product variants.
    """

    def __init__(self, session: Session):
        self.session = session

    def create(self, color_create: ColorCreate) -> Color:
        """
        Create a new color.
        Raises:
            ColorAlreadyExistsError: If the code or the name is already taken.
        """
        log.debug("Creating color", color_name=color_create.color_name)
        self._ensure_unique(color_create.color_code, color_create.color_name)

        color = Color(
            color_code=color_create.color_code, color_name=color_create.color_name
        )
        with transaction(self.session, "creating color"):
            self.session.add(color)

        log.info("Color created successfully", color_id=str(color.id))
        return color

    def find_all(self) -> List[Color]:
        return list(self.session.exec(select(Color).order_by(Color.color_name)).all())

    def find_one(self, color_id: UUID) -> Color:
        color = self.session.get(Color, color_id)
        if not color:
            log.warning("Color not found", color_id=str(color_id))
            raise ColorNotFoundError()
        return color

    def update(self, color_id: UUID, color_update: ColorUpdate) -> Color:
        color = self.find_one(color_id)
        update_data = color_update.model_dump(exclude_unset=True, exclude_none=True)
        if not update_data:
            return color

        self._ensure_unique(
            update_data.get("color_code"), update_data.get("color_name"), color_id
        )

        with transaction(self.session, "updating color"):
            for key, value in update_data.items():
                setattr(color, key, value)
            self.session.add(color)

        log.info("Color updated successfully", color_id=str(color_id))
        return color

    def remove(self, color_id: UUID) -> Color:
        """
        Delete a color.
        Raises:
            ColorNotFoundError: If the color does not exist.
            ColorInUseError: If any variant still uses it.
        """
        color = self.find_one(color_id)

        in_use = self.session.exec(
            select(ProductVariant.id).where(ProductVariant.color_id == color_id).limit(1)
        ).first()
        if in_use is not None:
            log.warning("Color is used by variants", color_id=str(color_id))
            raise ColorInUseError()

        with transaction(self.session, "deleting color"):
            self.session.delete(color)

        log.info("Color deleted successfully", color_id=str(color_id))
        return color

    def get_or_create(self, color_name: str, color_code: Optional[str] = None) -> Color:
        """
        Look a color up by name, creating it when missing.
        Runs inside the caller's transaction: the new row is flushed, not committed.
        A new color takes `color_code`, or the lowercased name when none is given.
        Raises:
            ColorAlreadyExistsError: If that code already belongs to another color.
        """
        color = self.session.exec(
            select(Color).where(Color.color_name == color_name)
        ).first()
        if color is not None:
            return color

        color_code = color_code or color_name.lower()
        self._ensure_unique(color_code, None)

        color = Color(color_name=color_name, color_code=color_code)
        self.session.add(color)
        self.session.flush()
        log.debug("Color created for variant", color_name=color_name)
        return color

    # --- Private Helper Methods ---

    def _ensure_unique(
        self,
        color_code: Optional[str],
        color_name: Optional[str],
        exclude_id: Optional[UUID] = None,
    ) -> None:
        conditions = []
        if color_code:
            conditions.append(Color.color_code == color_code)
        if color_name:
            conditions.append(Color.color_name == color_name)
        if not conditions:
            return

        query = select(Color.id).where(or_(*conditions))
        if exclude_id is not None:
            query = query.where(Color.id != exclude_id)
        if self.session.exec(query).first() is not None:
            log.warning(
                "Color already exists", color_code=color_code, color_name=color_name
            )
            raise ColorAlreadyExistsError()
