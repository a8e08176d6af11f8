"""Category handlers."""

from __future__ import annotations

from cmsadmin.handlers.base import BaseHandlers
from cmsadmin.models.category import Category, CreateCategoryRequest, UpdateCategoryRequest
from cmsadmin.schema import CATEGORIES


class CategoryHandlers(BaseHandlers):
    """All category operations. Slugs are looked up, not enforced unique."""

    table = CATEGORIES
    label = "Category"

    async def list(self) -> list[Category]:
        """List every category, newest first."""
        rows = await self.store.query(CATEGORIES).order("desc").collect()
        return [Category.model_validate(row) for row in rows]

    async def get(self, category_id: str) -> Category | None:
        doc = await self.store.get(category_id, CATEGORIES)
        return Category.model_validate(doc) if doc else None

    async def get_by_slug(self, slug: str) -> Category | None:
        doc = await self.store.query(CATEGORIES).with_index("by_slug", slug=slug).first()
        return Category.model_validate(doc) if doc else None

    async def create(self, req: CreateCategoryRequest) -> str:
        """
        Create a category.

        Returns:
            New category id
        """
        now = self.clock()
        return await self.store.insert(
            CATEGORIES,
            {**req.model_dump(), "created_at": now, "updated_at": now},
        )

    async def update(self, req: UpdateCategoryRequest) -> None:
        """
        Apply the provided fields to a category.

        Raises:
            NotFoundError: If the category does not exist
        """
        await self._require(req.id)
        await self.store.patch(req.id, self._changes(req))

    async def remove(self, category_id: str) -> None:
        """Delete a category. News and posts referencing it are left untouched."""
        await self.store.delete(category_id)
