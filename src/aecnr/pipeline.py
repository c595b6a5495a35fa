"""Time-domain processing driver: analysis, activity detection, strategies, synthesis."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

from aecnr.config_schema import ProcessingConfig, validate_config
from aecnr.evaluation.metrics import MetricsReport, compute_metrics
from aecnr.filters.composer import Strategy, compose
from aecnr.filters.core import (
    ActivityMasks,
    ConfigurationError,
    ProcessingResult,
    Recording,
    SignalSet,
)
from aecnr.signal.stft import STFTPlan, analyze, synthesize
from aecnr.signal.vad import detect_activity

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class StrategyRun:
    """Processed output and metrics of one strategy."""

    strategy: str
    result: ProcessingResult
    output: Recording
    metrics: MetricsReport | None = None

    def to_record(self) -> dict[str, object]:
        record: dict[str, object] = {"strategy": self.strategy}
        record.update(self.result.metadata)
        if self.metrics is not None:
            record.update(self.metrics.to_summary())
        return record


def check_recording(recording: Recording, config: ProcessingConfig) -> None:
    """Ensure ``recording`` matches the explicitly configured rate and channels.

    Settings left as ``None`` are taken from the recording and not checked.
    """
    if config.sample_rate is not None and recording.sample_rate != config.sample_rate:
        raise ConfigurationError(
            f"recording sample rate {recording.sample_rate} != configured "
            f"{config.sample_rate}"
        )
    if config.n_mics is not None and recording.n_mics != config.n_mics:
        raise ConfigurationError(
            f"recording has {recording.n_mics} microphones, configured {config.n_mics}"
        )
    if (
        config.n_loudspeakers is not None
        and recording.n_loudspeakers != config.n_loudspeakers
    ):
        raise ConfigurationError(
            f"recording has {recording.n_loudspeakers} loudspeakers, configured "
            f"{config.n_loudspeakers}"
        )
    if config.reference_channel >= recording.n_mics:
        raise ConfigurationError(
            f"reference_channel {config.reference_channel} out of range for "
            f"{recording.n_mics} microphones"
        )


def analyze_recording(recording: Recording, plan: STFTPlan) -> SignalSet:
    """Transform every stem of ``recording`` to the frequency domain."""
    views = {
        name: analyze(stem, plan, recording.sample_rate)
        for name, stem in recording.items()
    }
    return SignalSet(**views)


def synthesize_signals(
    signals: SignalSet, plan: STFTPlan, sample_rate: int, n_samples: int
) -> Recording:
    """Transform every view of ``signals`` back to ``n_samples`` time samples."""
    stems = {
        name: synthesize(view, plan, sample_rate, n_samples)
        for name, view in signals.items()
    }
    return Recording(**stems, sample_rate=sample_rate)


def detect_masks(
    signals: SignalSet, *, sensitivity: float, reference_channel: int
) -> ActivityMasks:
    """Detect desired-speech and echo activity from their component views."""
    return ActivityMasks(
        speech=detect_activity(signals.speech, sensitivity, reference_channel),
        echo=detect_activity(signals.echo_speech, sensitivity, reference_channel),
    )


def process_signals(
    signals: SignalSet,
    masks: ActivityMasks,
    config: ProcessingConfig,
    strategy: Strategy | str,
) -> ProcessingResult:
    """Run ``strategy`` on analyzed signals with the configured ranks."""
    return compose(
        signals,
        masks,
        strategy,
        rank_s=config.rank_s,
        rank_ses=config.rank_ses,
        workers=config.runtime.workers,
    )


def process_recording(
    recording: Recording,
    config: ProcessingConfig,
    strategy: Strategy | str,
) -> tuple[ProcessingResult, Recording]:
    """Process one recording end to end and return the time-domain output."""
    validate_config(config)
    check_recording(recording, config)
    plan = config.stft.to_plan()
    signals = analyze_recording(recording, plan)
    masks = detect_masks(
        signals,
        sensitivity=config.vad.sensitivity,
        reference_channel=config.reference_channel,
    )
    result = process_signals(signals, masks, config, strategy)
    output = synthesize_signals(
        result.signals, plan, recording.sample_rate, recording.n_samples
    )
    return result, output


def evaluate(
    recording: Recording, output: Recording, config: ProcessingConfig
) -> MetricsReport:
    """Compute reference-channel metrics with the configured evaluation settings."""
    return compute_metrics(
        recording,
        output,
        reference_channel=config.reference_channel,
        sensitivity=config.vad.sensitivity,
        warmup_sec=config.evaluation.warmup_sec,
    )


def run_strategies(
    recording: Recording,
    config: ProcessingConfig,
    strategies: Sequence[Strategy | str] | None = None,
    *,
    with_metrics: bool = True,
) -> list[StrategyRun]:
    """Run several strategies on one recording, sharing analysis and masks."""
    validate_config(config)
    check_recording(recording, config)
    selected = [
        Strategy.parse(name) for name in (strategies or config.strategies)
    ]
    plan = config.stft.to_plan()
    signals = analyze_recording(recording, plan)
    masks = detect_masks(
        signals,
        sensitivity=config.vad.sensitivity,
        reference_channel=config.reference_channel,
    )
    LOGGER.info(
        "Analyzed %.2f s recording: %d frames x %d bins",
        recording.duration,
        signals.n_frames,
        signals.n_bins,
    )

    runs: list[StrategyRun] = []
    for strategy in selected:
        result = process_signals(signals, masks, config, strategy)
        output = synthesize_signals(
            result.signals, plan, recording.sample_rate, recording.n_samples
        )
        metrics = evaluate(recording, output, config) if with_metrics else None
        if metrics is not None:
            LOGGER.info(
                "%s | SNR improvement %.2f dB | SER improvement %.2f dB | SD %.2f dB",
                strategy.value,
                metrics.snr_improvement,
                metrics.ser_improvement,
                metrics.sd,
            )
        runs.append(
            StrategyRun(
                strategy=strategy.value, result=result, output=output, metrics=metrics
            )
        )
    return runs
