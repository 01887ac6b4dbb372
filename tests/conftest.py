"""Shared pytest fixtures for the ebookforge test suite."""

import pytest
from unittest.mock import MagicMock, AsyncMock


# ---------------------------------------------------------------------------
# Database fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def tmp_db_path(tmp_path):
    """Return a temporary SQLite database path."""
    return tmp_path / "test_ebooks.db"


@pytest.fixture
def db(tmp_db_path):
    """Return an initialized Database instance backed by a temp file."""
    from models.database import Database
    return Database(tmp_db_path)


# ---------------------------------------------------------------------------
# Settings fixture
# ---------------------------------------------------------------------------

@pytest.fixture
def settings(tmp_path):
    """Return a Settings instance with all paths pointing to tmp_path."""
    from config.settings import Settings
    return Settings(
        _env_file=None,
        sqlite_db_path=tmp_path / "ebooks.db",
        storage_dir=tmp_path / "storage",
        storage_base_url="http://files.test",
        log_dir=tmp_path / "logs",
        jwt_secret="test-secret",
    )


# ---------------------------------------------------------------------------
# LLM and collaborator mocks
# ---------------------------------------------------------------------------

def _section_text(key: str) -> str:
    return f"Text for {key}."


def _structure_response(num_chapters: int, title: str = "Guia Completo") -> dict:
    return {"title": title, "chapters": [f"Capítulo {i}" for i in range(1, num_chapters + 1)]}


def _content_response(num_chapters: int) -> dict:
    from agents.content_generator import SECTIONS, section_field
    return {
        section_field(i, slug): _section_text(section_field(i, slug))
        for i in range(num_chapters)
        for slug, _ in SECTIONS
    }


@pytest.fixture
def structure_response():
    """Factory for the structure call payload: structure_response(n)."""
    return _structure_response


@pytest.fixture
def content_response():
    """Factory for the batched section payload: content_response(n)."""
    return _content_response


@pytest.fixture
def mock_llm():
    """Return a MagicMock replacing AgentSDKClient."""
    llm = MagicMock()
    llm.chat = AsyncMock(return_value="translated text")
    llm.chat_json = AsyncMock(return_value={})
    llm.get_usage_summary.return_value = {"total_calls": 1}
    return llm


@pytest.fixture
def fake_storage():
    """Storage stand-in that records keys and returns predictable URLs."""
    storage = MagicMock()
    storage.stored = {}

    async def _put(key, data, content_type="application/octet-stream"):
        storage.stored[key] = data
        return f"http://files.test/{key}"

    storage.put = AsyncMock(side_effect=_put)
    return storage


@pytest.fixture
def fake_images():
    images = MagicMock()
    images.generate = AsyncMock(return_value="http://images.test/cover.png")
    return images


# ---------------------------------------------------------------------------
# Sample data fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def sample_ebook(db):
    """Insert and return a processing Ebook owned by user 1."""
    from models.ebook import Ebook
    from models.enums import EbookStatus
    ebook = Ebook(
        user_id=1,
        title="eBook sobre Finanças",
        theme="Finanças",
        author="Ana Souza",
        languages="pt,en",
        num_chapters=3,
        status=EbookStatus.PROCESSING,
    )
    ebook.id = db.create_ebook(ebook)
    return ebook


@pytest.fixture
def generated_ebook():
    from agents.content_generator import GeneratedChapter, GeneratedEbook
    return GeneratedEbook(
        title="Guia Completo",
        language="pt",
        chapters=[
            GeneratedChapter(title=f"Capítulo {i}", content=f"## Introdução\n\nConteúdo {i}.")
            for i in range(1, 4)
        ],
    )
