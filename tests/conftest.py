"""
pytest configuration for the gallery downloader tests.

Adds src directory to Python path for imports and provides shared fixtures.
"""

import sys
from datetime import UTC, datetime
from pathlib import Path
from unittest.mock import AsyncMock, Mock

import aiohttp
import pytest

# Add src directory to Python path
src_dir = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_dir))

from groupme_gallery.schemas import MediaItem  # noqa: E402

IMAGE_HASH = "0123456789abcdef0123456789abcdef"


@pytest.fixture
def image_url():
    """Factory for image-host urls ending in a 32-character hash."""

    def _image_url(hash_: str = IMAGE_HASH, ext: str = "jpeg") -> str:
        return f"https://i.groupme.com/1024x768.{ext}.{hash_}"

    return _image_url


@pytest.fixture
def make_item(image_url):
    """Factory for MediaItems with distinct urls."""

    def _make_item(n: int = 0, user: str = "Alice", created: datetime | None = None) -> MediaItem:
        return MediaItem(
            url=image_url(f"{n:032x}"),
            user=user,
            created=created or datetime(2021, 3, 14, 15, 9, 26, tzinfo=UTC),
            source_message_id=str(1000 + n),
        )

    return _make_item


@pytest.fixture
def response_ctx():
    """Wrap a mock response in an async context manager, as session.get() returns."""

    def _response_ctx(response) -> AsyncMock:
        ctx = AsyncMock()
        ctx.__aenter__ = AsyncMock(return_value=response)
        ctx.__aexit__ = AsyncMock(return_value=None)
        return ctx

    return _response_ctx


@pytest.fixture
def json_response():
    """Factory for mock API responses."""

    def _json_response(status: int = 200, body=None, headers: dict | None = None) -> Mock:
        response = Mock()
        response.status = status
        response.headers = headers or {}
        response.json = AsyncMock(return_value=body)
        return response

    return _json_response


@pytest.fixture
def mock_session():
    """Create mock aiohttp ClientSession."""
    session = Mock(spec=aiohttp.ClientSession)
    session.closed = False
    return session
