import pytest
from httpx import AsyncClient, ASGITransport
from unittest.mock import AsyncMock, MagicMock
from typing import AsyncGenerator, Dict

from src.main import app
from src.core.storage import LocalArtifactStorage
from src.engines.generation.job_store import InMemoryJobStore
from src.engines.generation.runner import JobRunner
from src.engines.generation.schemas import Provider
from src.engines.generation.service import AIService, set_ai_service
from tests.helpers import make_png_data_url


@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"


@pytest.fixture
def png_data_url() -> str:
    return make_png_data_url()


@pytest.fixture
def storage(tmp_path) -> LocalArtifactStorage:
    return LocalArtifactStorage(
        storage_path=str(tmp_path / "generated"),
        public_url_base="/generated"
    )


@pytest.fixture
def providers() -> Dict[Provider, MagicMock]:
    """One mock provider per provider id; configure ``generate_image`` per test."""
    return {
        Provider.GEMINI: MagicMock(generate_image=AsyncMock()),
        Provider.ZAI: MagicMock(generate_image=AsyncMock()),
    }


@pytest.fixture
def provider_factory(providers) -> MagicMock:
    return MagicMock(side_effect=lambda provider: providers[provider])


@pytest.fixture
def job_store() -> InMemoryJobStore:
    return InMemoryJobStore()


@pytest.fixture
def service(job_store, storage, provider_factory) -> AIService:
    return AIService(
        job_store=job_store,
        storage=storage,
        provider_factory=provider_factory,
        runner=JobRunner()
    )


@pytest.fixture
async def client(service) -> AsyncGenerator[AsyncClient, None]:
    set_ai_service(service)
    # Trigger lifespan events (startup/shutdown)
    async with app.router.lifespan_context(app):
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            yield ac
