"""Pytest configuration and fixtures."""

from collections.abc import AsyncGenerator
from typing import Any, Callable

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

import api_governance.models  # noqa: F401
from api_governance.config import Settings
from api_governance.database import Base, create_db_engine, create_session_maker
from api_governance.extraction.spectral import SpectralRuleExtractor
from api_governance.repositories.ruleset import RulesetRepository
from api_governance.schemas.ruleset import RulesetDraft


TWO_RULES_YAML = """\
rules:
  operation-operationId:
    description: Every operation must have an operationId.
    message: Operation is missing an operationId.
    severity: error
    given: "$.paths[*][*]"
    then:
      field: operationId
      function: truthy
  info-contact:
    description: API definitions should name a contact.
    severity: warn
    given: "$.info"
    then:
      field: contact
      function: truthy
"""

THREE_RULES_YAML = """\
rules:
  info-description:
    description: API must be described.
    severity: error
    given: "$.info"
    then:
      field: description
      function: truthy
  paths-kebab-case:
    description: Paths should be kebab-case.
    severity: info
    given: "$.paths"
    then:
      field: "@key"
      function: pattern
      functionOptions:
        match: "^(/[a-z0-9-]+)+$"
  tag-description:
    description: Tags should be described.
    severity: hint
    given: "$.tags[*]"
    then:
      field: description
      function: truthy
"""

NO_RULES_YAML = """\
extends: spectral:oas
rules: {}
"""


def get_test_settings(database_url: str) -> Settings:
    """Override settings for testing."""
    return Settings(
        database_url=database_url,
        environment="test",
        log_level="WARNING",
        metrics_enabled=True,
    )


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    """Settings pointing at a throwaway SQLite file.

    A file database gives every session its own connection, like a server
    database would.
    """
    return get_test_settings(f"sqlite+aiosqlite:///{tmp_path / 'governance.db'}")


@pytest_asyncio.fixture(scope="function")
async def test_engine(test_settings: Settings) -> AsyncGenerator[AsyncEngine, None]:
    """Create test database engine with the governance schema."""
    engine = create_db_engine(test_settings.database_url, test_settings)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_maker(test_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory handed to repositories."""
    return create_session_maker(test_engine)


@pytest_asyncio.fixture(scope="function")
async def test_session(
    session_maker: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Create test database session."""
    async with session_maker() as session:
        yield session


@pytest.fixture
def extractor() -> SpectralRuleExtractor:
    return SpectralRuleExtractor()


@pytest.fixture
def repository(
    session_maker: async_sessionmaker[AsyncSession],
    extractor: SpectralRuleExtractor,
    test_settings: Settings,
) -> RulesetRepository:
    """Ruleset repository over the test database."""
    return RulesetRepository(session_maker, extractor, test_settings)


@pytest.fixture
def make_draft() -> Callable[..., RulesetDraft]:
    """Build ruleset drafts with sensible defaults."""

    def _make(**overrides: Any) -> RulesetDraft:
        data: dict[str, Any] = {
            "name": "R1",
            "description": "Design checks",
            "content": TWO_RULES_YAML,
            "rule_type": "API_DEFINITION",
            "artifact_type": "REST_API",
            "documentation_link": "https://example.com/rulesets/r1",
            "provider": "platform",
            "created_by": "alice",
        }
        data.update(overrides)
        return RulesetDraft(**data)

    return _make
