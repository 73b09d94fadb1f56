"""Tests for SQLitePromptTemplateRepository."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from screenvision.domain.entities import PromptTemplate
from screenvision.infrastructure.persistence import (
    PromptTemplateModel,  # noqa: F401
    SQLitePromptTemplateRepository,
)


@pytest.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create in-memory SQLite async engine."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine):
    """Create async session factory."""
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    @asynccontextmanager
    async def get_session() -> AsyncGenerator[AsyncSession, None]:
        async with factory() as session:
            yield session

    return get_session


@pytest.fixture
def repository(session_factory) -> SQLitePromptTemplateRepository:
    return SQLitePromptTemplateRepository(session_factory)


def create_test_template(
    id: str = "custom-1",
    name: str = "My template",
    created_at: datetime | None = None,
) -> PromptTemplate:
    return PromptTemplate(
        id=id,
        name=name,
        analyze_template="Analyze. {HISTORY}",
        chat_template="Chat. {USER_MESSAGE}",
        description="desc",
        icon="📘",
        created_at=created_at or datetime.now(timezone.utc),
    )


class TestSave:
    """save tests."""

    async def test_save_and_find(
        self, repository: SQLitePromptTemplateRepository
    ) -> None:
        template = create_test_template()

        await repository.save(template)

        found = await repository.find_by_id("custom-1")
        assert found is not None
        assert found.name == "My template"
        assert found.analyze_template == "Analyze. {HISTORY}"
        assert found.chat_template == "Chat. {USER_MESSAGE}"
        assert found.description == "desc"
        assert found.icon == "📘"
        assert found.builtin is False
        assert found.created_at.tzinfo == timezone.utc

    async def test_save_overwrites(
        self, repository: SQLitePromptTemplateRepository
    ) -> None:
        await repository.save(create_test_template(name="Old"))
        await repository.save(create_test_template(name="New"))

        templates = await repository.find_all()
        assert len(templates) == 1
        assert templates[0].name == "New"


class TestFind:
    """find_by_id/find_all tests."""

    async def test_find_unknown(
        self, repository: SQLitePromptTemplateRepository
    ) -> None:
        assert await repository.find_by_id("missing") is None

    async def test_find_all_empty(
        self, repository: SQLitePromptTemplateRepository
    ) -> None:
        assert await repository.find_all() == []

    async def test_find_all_oldest_first(
        self, repository: SQLitePromptTemplateRepository
    ) -> None:
        now = datetime.now(timezone.utc)
        await repository.save(create_test_template(id="b", created_at=now))
        await repository.save(
            create_test_template(id="a", created_at=now - timedelta(hours=1))
        )

        templates = await repository.find_all()

        assert [template.id for template in templates] == ["a", "b"]


class TestDelete:
    """delete tests."""

    async def test_delete_existing(
        self, repository: SQLitePromptTemplateRepository
    ) -> None:
        await repository.save(create_test_template())

        assert await repository.delete("custom-1") is True
        assert await repository.find_by_id("custom-1") is None

    async def test_delete_missing(
        self, repository: SQLitePromptTemplateRepository
    ) -> None:
        assert await repository.delete("missing") is False
