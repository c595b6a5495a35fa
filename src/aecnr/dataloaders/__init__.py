"""Recording loaders and synthetic scene generation."""

from .recording import load_metadata, load_recording, save_recording
from .synthetic import activity_schedule, simulate_scene

__all__ = [
    "load_metadata",
    "load_recording",
    "save_recording",
    "activity_schedule",
    "simulate_scene",
]
