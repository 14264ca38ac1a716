from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models import Prompt


class PromptRepository:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get(self, key: str) -> Prompt | None:
        row = await self.db.execute(select(Prompt).where(Prompt.key == key))
        return row.scalar_one_or_none()

    async def upsert(self, key: str, content: str, description: str | None = None) -> Prompt:
        prompt = await self.get(key)
        if prompt is None:
            prompt = Prompt(key=key, content=content, description=description)
            self.db.add(prompt)
        else:
            prompt.content = content
            if description is not None:
                prompt.description = description
        await self.db.flush()
        return prompt
