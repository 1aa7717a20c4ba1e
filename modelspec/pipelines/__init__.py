"""Pipeline implementations for running models."""

from .config import (
    RunnerConfig,
    PathsConfig,
    RegistryConfig,
    LoggingConfig,
    EngineConfig,
    load_config,
    get_default_config,
)
from .local_engine import LocalEngine
from .extract_score import (
    ExtractScorePipeline,
    ExtractScoreResult,
    check_compatibility,
    create_local_pipeline,
    run_extract_score,
)

__all__ = [
    # Config
    "RunnerConfig",
    "PathsConfig",
    "RegistryConfig",
    "LoggingConfig",
    "EngineConfig",
    "load_config",
    "get_default_config",
    # Engine
    "LocalEngine",
    # Extract-score
    "ExtractScorePipeline",
    "ExtractScoreResult",
    "check_compatibility",
    "create_local_pipeline",
    "run_extract_score",
]
