"""Wires the pipeline's collaborators together from configuration."""

import logging

from src.agent.cleanup import TextCleanupService
from src.agent.completion import AgentService, CompletionService
from src.agent.config import AgentConfig, get_agent_config
from src.agent.validator import QualityValidator
from src.braille.online import BrailleService, OnlineBrailleTranslator
from src.parsing.extractor import TextExtractor
from src.pipeline.config import PipelineConfig, get_pipeline_config
from src.pipeline.live_updates import LiveUpdateHub
from src.pipeline.orchestrator import ConversionOrchestrator
from src.storage.blob_store import LocalBlobStore
from src.storage.job_store import JobStore, build_job_store

logger = logging.getLogger(__name__)


def build_orchestrator(
    config: PipelineConfig | None = None,
    agent_config: AgentConfig | None = None,
    completion: CompletionService | None = None,
    job_store: JobStore | None = None,
) -> ConversionOrchestrator:
    """Create an orchestrator with default collaborators.

    Args:
        config: Pipeline settings. Loads from environment if not provided.
        agent_config: AI settings. Loads from environment if not provided.
        completion: Completion service override (defaults to AgentService).
        job_store: Job store override (defaults to one built from config).

    Returns:
        Ready-to-use ConversionOrchestrator.
    """
    config = config or get_pipeline_config()
    agent_config = agent_config or get_agent_config()
    completion = completion or AgentService(agent_config)

    online = None
    if config.braille_translator_url:
        logger.info(f"Online Braille translator enabled at {config.braille_translator_url}")
        online = OnlineBrailleTranslator(config.braille_translator_url)

    return ConversionOrchestrator(
        job_store=job_store or build_job_store(config.database_path),
        blob_store=LocalBlobStore(config.storage_dir),
        extractor=TextExtractor(fetch_timeout=config.fetch_timeout),
        cleanup=TextCleanupService(completion, agent_config),
        braille=BrailleService(online),
        validator=QualityValidator(completion, agent_config),
        live_updates=LiveUpdateHub(),
        config=config,
    )
