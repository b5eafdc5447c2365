import io
from typing import AsyncGenerator, Callable

import pytest
from httpx import AsyncClient, ASGITransport
from PIL import Image

from src.main import app


@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"


@pytest.fixture
async def client() -> AsyncGenerator[AsyncClient, None]:
    # Trigger lifespan events (startup/shutdown)
    async with app.router.lifespan_context(app):
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            yield ac


@pytest.fixture
def make_image_bytes() -> Callable[..., bytes]:
    """Factory for in-memory encoded test images."""
    def _make(
        size=(2, 2),
        color=(10, 120, 200),
        mode: str = "RGB",
        fmt: str = "PNG",
        **save_kwargs
    ) -> bytes:
        buffer = io.BytesIO()
        Image.new(mode, size, color).save(buffer, format=fmt, **save_kwargs)
        return buffer.getvalue()
    return _make
