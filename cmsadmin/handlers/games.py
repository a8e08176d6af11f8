"""Game handlers."""

from __future__ import annotations

from cmsadmin.handlers.base import BaseHandlers
from cmsadmin.models.game import CreateGameRequest, Game, UpdateGameRequest
from cmsadmin.schema import GAMES


class GameHandlers(BaseHandlers):
    """All game operations. Same slug-lookup pattern as categories."""

    table = GAMES
    label = "Game"

    async def list(self) -> list[Game]:
        rows = await self.store.query(GAMES).order("desc").collect()
        return [Game.model_validate(row) for row in rows]

    async def get(self, game_id: str) -> Game | None:
        doc = await self.store.get(game_id, GAMES)
        return Game.model_validate(doc) if doc else None

    async def get_by_slug(self, slug: str) -> Game | None:
        doc = await self.store.query(GAMES).with_index("by_slug", slug=slug).first()
        return Game.model_validate(doc) if doc else None

    async def create(self, req: CreateGameRequest) -> str:
        now = self.clock()
        return await self.store.insert(GAMES, {**req.model_dump(), "created_at": now, "updated_at": now})

    async def update(self, req: UpdateGameRequest) -> None:
        await self._require(req.id)
        await self.store.patch(req.id, self._changes(req))

    async def remove(self, game_id: str) -> None:
        await self.store.delete(game_id)
