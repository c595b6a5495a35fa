"""aecnr public API."""

from .config_schema import ProcessingConfig, parse_processing_config
from .configs import load_yaml, save_yaml
from .dataloaders import load_recording, save_recording, simulate_scene
from .evaluation import MetricsReport, compute_metrics
from .filters import Strategy, compose
from .filters.core import (
    ActivityMasks,
    AecNrError,
    ConfigurationError,
    InsufficientDataError,
    NumericalInstabilityError,
    ProcessingResult,
    Recording,
    SignalSet,
    SingularityError,
)
from .logging_utils import JsonlLogger
from .pipeline import process_recording, run_strategies

__all__ = [
    "ProcessingConfig",
    "parse_processing_config",
    "load_yaml",
    "save_yaml",
    "load_recording",
    "save_recording",
    "simulate_scene",
    "MetricsReport",
    "compute_metrics",
    "Strategy",
    "compose",
    "ActivityMasks",
    "AecNrError",
    "ConfigurationError",
    "InsufficientDataError",
    "NumericalInstabilityError",
    "ProcessingResult",
    "Recording",
    "SignalSet",
    "SingularityError",
    "JsonlLogger",
    "process_recording",
    "run_strategies",
]
