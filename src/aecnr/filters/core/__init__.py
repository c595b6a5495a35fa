"""Core abstractions shared by the filter design stages.

This package provides:

- Typed signal, mask, and filter containers.
- The error hierarchy raised by filter design and strategy composition.
"""

from .errors import (
    AecNrError,
    ConfigurationError,
    InsufficientDataError,
    NumericalInstabilityError,
    SingularityError,
)
from .io_models import (
    EXTENSION_PARTNERS,
    LOUDSPEAKER_VIEWS,
    MIC_VIEWS,
    VIEW_NAMES,
    ActivityMasks,
    CorrelationPair,
    GEVDFilter,
    ProcessingResult,
    Recording,
    SignalSet,
    StageResult,
)

__all__ = [
    "AecNrError",
    "ConfigurationError",
    "InsufficientDataError",
    "NumericalInstabilityError",
    "SingularityError",
    "EXTENSION_PARTNERS",
    "LOUDSPEAKER_VIEWS",
    "MIC_VIEWS",
    "VIEW_NAMES",
    "ActivityMasks",
    "CorrelationPair",
    "GEVDFilter",
    "ProcessingResult",
    "Recording",
    "SignalSet",
    "StageResult",
]
