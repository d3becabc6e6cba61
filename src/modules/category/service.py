"""Category service — owner-managed order categories."""

from __future__ import annotations

import logging
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.exceptions import ConflictException, ForbiddenException, NotFoundException
from src.models.category import Category
from src.modules.identity.roles import Principal

logger = logging.getLogger(__name__)


class CategoryService:
    def __init__(self, db: AsyncSession):
        self.db = db

    @staticmethod
    def _require_owner(principal: Principal) -> None:
        if not principal.is_owner:
            raise ForbiddenException("Only owners can manage categories")

    async def _ensure_slug_free(self, slug: str, exclude_id: uuid.UUID | None = None) -> None:
        query = select(Category.id).where(Category.slug == slug)
        if exclude_id is not None:
            query = query.where(Category.id != exclude_id)
        if (await self.db.execute(query)).scalar_one_or_none() is not None:
            raise ConflictException(f"Category slug '{slug}' is already in use")

    async def get_category(self, category_id: uuid.UUID) -> Category:
        result = await self.db.execute(select(Category).where(Category.id == category_id))
        category = result.scalar_one_or_none()
        if category is None:
            raise NotFoundException(f"Category {category_id} not found")
        return category

    async def list_categories(self, active_only: bool = True) -> list[Category]:
        query = select(Category).order_by(Category.name.asc())
        if active_only:
            query = query.where(Category.is_active.is_(True))
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def create_category(self, principal: Principal, name: str, slug: str) -> Category:
        self._require_owner(principal)
        await self._ensure_slug_free(slug)
        category = Category(name=name, slug=slug, is_active=True)
        self.db.add(category)
        await self.db.flush()
        logger.info("Created category %s (%s)", category.id, slug)
        return category

    async def update_category(
        self,
        principal: Principal,
        category_id: uuid.UUID,
        name: str | None = None,
        slug: str | None = None,
    ) -> Category:
        self._require_owner(principal)
        category = await self.get_category(category_id)
        if slug is not None and slug != category.slug:
            await self._ensure_slug_free(slug, exclude_id=category.id)
            category.slug = slug
        if name is not None:
            category.name = name
        await self.db.flush()
        return category

    async def set_category_active(
        self, principal: Principal, category_id: uuid.UUID, is_active: bool
    ) -> Category:
        self._require_owner(principal)
        category = await self.get_category(category_id)
        category.is_active = is_active
        await self.db.flush()
        logger.info("Category %s active=%s", category.id, is_active)
        return category
