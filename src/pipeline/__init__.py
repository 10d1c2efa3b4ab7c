"""Conversion pipeline orchestration.

Sequences extraction, AI cleanup, Braille conversion and validation for each
job, persists progress after every stage, caps concurrent jobs and broadcasts
live updates to subscribers.
"""

from src.pipeline.config import PipelineConfig, get_pipeline_config
from src.pipeline.factory import build_orchestrator
from src.pipeline.live_updates import LiveUpdateHub
from src.pipeline.orchestrator import ActiveJobGuard, ConversionError, ConversionOrchestrator

__all__ = [
    "ActiveJobGuard",
    "ConversionError",
    "ConversionOrchestrator",
    "LiveUpdateHub",
    "PipelineConfig",
    "build_orchestrator",
    "get_pipeline_config",
]
