"""SQLite implementation of PromptTemplateRepository."""

from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from datetime import datetime, timezone

from sqlalchemy import delete
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from screenvision.domain.entities import PromptTemplate
from screenvision.infrastructure.persistence.datetime_utils import ensure_utc
from screenvision.infrastructure.persistence.models import PromptTemplateModel


class SQLitePromptTemplateRepository:
    """Stores custom prompt templates in SQLite."""

    def __init__(
        self,
        session_factory: Callable[[], AbstractAsyncContextManager[AsyncSession]],
    ) -> None:
        """Initialize the repository.

        Args:
            session_factory: Async session factory.
        """
        self._session_factory = session_factory

    async def save(self, template: PromptTemplate) -> None:
        """Insert or update a template (upsert by ID)."""
        async with self._session_factory() as session:
            model = PromptTemplateModel(
                id=template.id,
                name=template.name,
                icon=template.icon,
                description=template.description,
                analyze_template=template.analyze_template,
                chat_template=template.chat_template,
                created_at=template.created_at,
                updated_at=datetime.now(timezone.utc),
            )
            await session.merge(model)
            await session.commit()

    async def find_by_id(self, template_id: str) -> PromptTemplate | None:
        async with self._session_factory() as session:
            model = await session.get(PromptTemplateModel, template_id)
            if model is None:
                return None
            return self._to_entity(model)

    async def find_all(self) -> list[PromptTemplate]:
        """Return all custom templates, oldest first."""
        async with self._session_factory() as session:
            stmt = select(PromptTemplateModel).order_by(
                PromptTemplateModel.created_at  # type: ignore[arg-type]
            )
            result = await session.exec(stmt)
            return [self._to_entity(model) for model in result.all()]

    async def delete(self, template_id: str) -> bool:
        """Delete a template.

        Returns:
            True when a row was deleted.
        """
        async with self._session_factory() as session:
            stmt = delete(PromptTemplateModel).where(
                PromptTemplateModel.id == template_id  # type: ignore[arg-type]
            )
            result = await session.execute(stmt)
            await session.commit()
            return result.rowcount > 0

    def _to_entity(self, model: PromptTemplateModel) -> PromptTemplate:
        return PromptTemplate(
            id=model.id,
            name=model.name,
            analyze_template=model.analyze_template,
            chat_template=model.chat_template,
            description=model.description,
            icon=model.icon,
            builtin=False,
            created_at=ensure_utc(model.created_at),
        )
