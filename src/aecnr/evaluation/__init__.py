"""Evaluation utilities for processed recordings."""

from .metrics import MetricsReport, compute_metrics, sd, ser, snr

__all__ = ["MetricsReport", "compute_metrics", "sd", "ser", "snr"]
