"""Pytest fixtures and shared test configuration.

Provides reusable fixtures for unit and integration tests.

Fixtures:
    - pipeline_config: Fast-polling pipeline config rooted in a temp dir
    - agent_config: AI config with a dummy key and no quota probe
    - make_orchestrator: Builds an orchestrator around test doubles
    - orchestrator: Default orchestrator with AI disabled
    - sample_pdf: Generated three-page text PDF
    - async_client: HTTPX client bound to an app with a test orchestrator
"""

from collections.abc import AsyncGenerator, Callable
from pathlib import Path

import pytest
from httpx import ASGITransport, AsyncClient

from src.agent.cleanup import TextCleanupService
from src.agent.config import AgentConfig
from src.agent.validator import QualityValidator
from src.api.app import create_app
from src.braille.online import BrailleService
from src.parsing.extractor import TextExtractor
from src.pipeline.config import PipelineConfig
from src.pipeline.live_updates import LiveUpdateHub
from src.pipeline.orchestrator import ConversionOrchestrator
from src.storage.blob_store import LocalBlobStore
from src.storage.job_store import JobStore
from tests.helpers import SAMPLE_LINES, FakeCompletionService, RecordingJobStore, make_pdf

OrchestratorFactory = Callable[..., ConversionOrchestrator]


@pytest.fixture
def pipeline_config(tmp_path: Path) -> PipelineConfig:
    """Return a pipeline config that polls fast and stores under tmp_path."""
    return PipelineConfig(
        max_concurrent_jobs=2,
        queue_poll_interval=0.01,
        storage_dir=tmp_path / "objects",
        database_path=None,
        braille_translator_url=None,
    )


@pytest.fixture
def agent_config() -> AgentConfig:
    """Return an AI config that never touches the environment's key."""
    return AgentConfig(api_key="sk-test", chunk_size=500, probe_quota=False)


@pytest.fixture
def make_orchestrator(pipeline_config: PipelineConfig, agent_config: AgentConfig) -> OrchestratorFactory:
    """Return a factory for orchestrators wired to test doubles.

    Completion defaults to a disabled fake, so cleanup passes text through
    and validation uses default scores.
    """

    def factory(
        completion: FakeCompletionService | None = None,
        job_store: JobStore | None = None,
        extractor: TextExtractor | None = None,
        max_concurrent_jobs: int | None = None,
    ) -> ConversionOrchestrator:
        completion = completion or FakeCompletionService(enabled=False)
        config = pipeline_config
        if max_concurrent_jobs is not None:
            config = pipeline_config.model_copy(update={"max_concurrent_jobs": max_concurrent_jobs})
        return ConversionOrchestrator(
            job_store=job_store or RecordingJobStore(),
            blob_store=LocalBlobStore(config.storage_dir),
            extractor=extractor or TextExtractor(),
            cleanup=TextCleanupService(completion, agent_config),
            braille=BrailleService(),
            validator=QualityValidator(completion, agent_config),
            live_updates=LiveUpdateHub(),
            config=config,
        )

    return factory


@pytest.fixture
def sample_pdf() -> bytes:
    """Return a generated three-page PDF with selectable text."""
    return make_pdf([SAMPLE_LINES, SAMPLE_LINES, SAMPLE_LINES])


@pytest.fixture
def orchestrator(make_orchestrator: OrchestratorFactory) -> ConversionOrchestrator:
    """Return an orchestrator with AI disabled."""
    return make_orchestrator()


@pytest.fixture
async def async_client(orchestrator: ConversionOrchestrator) -> AsyncGenerator[AsyncClient]:
    """Create async HTTP client for API testing.

    Yields:
        Configured AsyncClient for making test requests.
    """
    app = create_app(orchestrator=orchestrator)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
