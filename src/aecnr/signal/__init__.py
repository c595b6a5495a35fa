"""Signal processing utilities."""

from .stft import STFTPlan, analyze, build_stft, synthesize
from .vad import detect_activity, detect_time_activity

__all__ = [
    "STFTPlan",
    "analyze",
    "build_stft",
    "synthesize",
    "detect_activity",
    "detect_time_activity",
]
