from typing import Optional, Set
from uuid import UUID

from sqlmodel import Session, or_, select

from catalog_service.config.logger_config import log
from catalog_service.core.exceptions import (
    CategoryAlreadyExistsError,
    CategoryHasChildrenError,
    CircularReferenceError,
    MaxDepthExceededError,
    ParentAlreadyNestedError,
    ParentCategoryNotFoundError,
    SelfParentError,
)
from catalog_service.domain.models import Category

# Safety ceiling for the ancestor walk, not a domain limit
MAX_TRAVERSAL_DEPTH = 50


class CategoryHierarchyValidator:
    """
    Read-only checks run before any category write.
    Enforces unique name/slug and a cycle-free hierarchy at most two levels deep.
    """

    def __init__(self, session: Session, max_depth: int = MAX_TRAVERSAL_DEPTH):
        self.session = session
        self.max_depth = max_depth

    def validate_uniqueness(
        self,
        name: Optional[str] = None,
        slug: Optional[str] = None,
        exclude_id: Optional[UUID] = None,
    ) -> None:
        """
        Raises:
            CategoryAlreadyExistsError: If another category uses `name` or `slug`.
        """
        conditions = []
        if name:
            conditions.append(Category.name == name)
        if slug:
            conditions.append(Category.slug == slug)
        if not conditions:
            return

        query = select(Category).where(or_(*conditions))
        if exclude_id is not None:
            query = query.where(Category.id != exclude_id)

        for existing in self.session.exec(query).all():
            if name and existing.name == name:
                log.warning("Category with name already exists", name=name)
                raise CategoryAlreadyExistsError("name")
            if slug and existing.slug == slug:
                log.warning("Category with slug already exists", slug=slug)
                raise CategoryAlreadyExistsError("slug")

    def validate_parent(
        self, parent_id: UUID, category_id: Optional[UUID] = None
    ) -> Category:
        """
        Check that `parent_id` may become the parent of `category_id`
        (None when the category is being created).
        Returns:
            The parent category.
        Raises:
            SelfParentError, ParentCategoryNotFoundError, CircularReferenceError,
            MaxDepthExceededError, ParentAlreadyNestedError, CategoryHasChildrenError.
        """
        if category_id is not None and parent_id == category_id:
            raise SelfParentError()

        parent = self.session.get(Category, parent_id)
        if parent is None:
            log.warning("Parent category not found", parent_id=str(parent_id))
            raise ParentCategoryNotFoundError()

        self._check_ancestors(parent, category_id)

        if parent.parent_id is not None:
            log.warning(
                "Parent category is already nested",
                parent_id=str(parent_id),
                grandparent_id=str(parent.parent_id),
            )
            raise ParentAlreadyNestedError()

        if category_id is not None and self._has_children(category_id):
            raise CategoryHasChildrenError()

        return parent

    def _check_ancestors(self, parent: Category, category_id: Optional[UUID]) -> None:
        """Walk up from `parent` one hop at a time."""
        visited: Set[UUID] = set()
        current: Optional[Category] = parent
        depth = 0

        while current is not None:
            if category_id is not None and current.id == category_id:
                log.warning(
                    "Cycle detected in category hierarchy",
                    category_id=str(category_id),
                    parent_id=str(parent.id),
                )
                raise CircularReferenceError()
            if current.id in visited:
                log.warning("Existing cycle in category hierarchy", at=str(current.id))
                raise CircularReferenceError()
            visited.add(current.id)

            depth += 1
            if depth > self.max_depth:
                raise MaxDepthExceededError()

            if current.parent_id is None:
                return
            current = self.session.get(Category, current.parent_id)

    def _has_children(self, category_id: UUID) -> bool:
        child = self.session.exec(
            select(Category.id).where(Category.parent_id == category_id).limit(1)
        ).first()
        return child is not None
