"""Typed OmegaConf schema for processing configurations."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
import importlib
from typing import Any, Mapping, Sequence, TypeVar, cast

from aecnr.filters.composer import Strategy
from aecnr.filters.core import ConfigurationError
from aecnr.signal.stft import STFTPlan

try:
    _omegaconf = importlib.import_module("omegaconf")
except ModuleNotFoundError as exc:  # pragma: no cover
    raise RuntimeError(
        "aecnr.config_schema requires 'omegaconf'. Install it with `pip install omegaconf`."
    ) from exc
OmegaConf = _omegaconf.OmegaConf
OmegaConfBaseException = _omegaconf.errors.OmegaConfBaseException

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class STFTConfig:
    """Filterbank configuration schema."""

    fft_size: int = 512
    hop_size: int = 256
    window: str = "hann"
    sqrt_window: bool = True

    def to_plan(self) -> STFTPlan:
        return STFTPlan(
            fft_size=self.fft_size,
            hop_size=self.hop_size,
            window=self.window,
            sqrt_window=self.sqrt_window,
        )


@dataclass
class VADConfig:
    """Voice activity detection schema."""

    sensitivity: float = 1e-5


@dataclass
class EvaluationConfig:
    """Metric evaluation schema."""

    warmup_sec: float = 0.0


@dataclass
class RuntimeConfig:
    """Runtime execution configuration schema."""

    workers: int = 1
    log_level: str = "INFO"
    output_dir: str = "outputs"
    seed: int = 0


@dataclass
class ProcessingConfig:
    """Top-level processing configuration schema.

    ``sample_rate``, ``n_mics`` and ``n_loudspeakers`` left as ``None`` are
    taken from the processed recording. When set, the recording must match.
    """

    sample_rate: int | None = None
    reference_channel: int = 0
    n_mics: int | None = None
    n_loudspeakers: int | None = None
    rank_s: int = 1
    rank_ses: int | None = None
    strategies: list[str] = field(default_factory=Strategy.names)
    stft: STFTConfig = field(default_factory=STFTConfig)
    vad: VADConfig = field(default_factory=VADConfig)
    evaluation: EvaluationConfig = field(default_factory=EvaluationConfig)
    runtime: RuntimeConfig = field(default_factory=RuntimeConfig)


TSchema = TypeVar("TSchema")


def _decode_schema(
    data: Mapping[str, object],
    schema: type[TSchema],
) -> TSchema:
    try:
        base = OmegaConf.structured(schema)
        loaded = OmegaConf.create(dict(data))
        merged = OmegaConf.merge(base, loaded)
        decoded = OmegaConf.to_object(merged)
    except OmegaConfBaseException as exc:
        raise ConfigurationError(
            f"Invalid {schema.__name__}: {exc}"
        ) from exc
    if not isinstance(decoded, schema):
        raise TypeError(f"Failed to decode config as {schema.__name__}")
    return cast(TSchema, decoded)


def parse_processing_config(data: Mapping[str, object]) -> ProcessingConfig:
    """Decode and validate a mapping into :class:`ProcessingConfig`.

    Strategy aliases are normalized to their canonical names.
    """
    config = _decode_schema(data, ProcessingConfig)
    validate_config(config)
    config.strategies = normalize_strategies(config.strategies)
    return config


def parse_stft_config(data: Mapping[str, object]) -> STFTConfig:
    """Decode a mapping into :class:`STFTConfig`."""
    return _decode_schema(data, STFTConfig)


def normalize_strategies(names: Sequence[str]) -> list[str]:
    """Return canonical strategy names, rejecting unknown ones."""
    return [Strategy.parse(name).value for name in names]


def validate_config(config: ProcessingConfig) -> None:
    """Raise :class:`ConfigurationError` for out-of-range settings.

    The configuration is not modified.
    """
    if config.sample_rate is not None and config.sample_rate <= 0:
        raise ConfigurationError("sample_rate must be positive")
    if config.n_mics is not None and config.n_mics < 1:
        raise ConfigurationError("n_mics must be >= 1")
    if config.n_loudspeakers is not None and config.n_loudspeakers < 0:
        raise ConfigurationError("n_loudspeakers must be >= 0")
    if config.reference_channel < 0 or (
        config.n_mics is not None and config.reference_channel >= config.n_mics
    ):
        raise ConfigurationError(
            f"reference_channel must lie in [0, n_mics), "
            f"got {config.reference_channel} with n_mics={config.n_mics}"
        )
    if config.rank_s < 1:
        raise ConfigurationError("rank_s must be >= 1")
    if config.rank_ses is not None and config.rank_ses < 1:
        raise ConfigurationError("rank_ses must be >= 1")
    if not config.strategies:
        raise ConfigurationError("strategies must not be empty")
    normalize_strategies(config.strategies)

    stft = config.stft
    if stft.fft_size < 2 or stft.hop_size < 1 or stft.hop_size > stft.fft_size:
        raise ConfigurationError(
            "stft requires fft_size >= 2 and 1 <= hop_size <= fft_size, "
            f"got fft_size={stft.fft_size}, hop_size={stft.hop_size}"
        )
    if config.vad.sensitivity < 0:
        raise ConfigurationError("vad.sensitivity must be non-negative")
    if config.evaluation.warmup_sec < 0:
        raise ConfigurationError("evaluation.warmup_sec must be non-negative")
    if config.runtime.workers < 1:
        raise ConfigurationError("runtime.workers must be >= 1")
    if config.runtime.log_level.upper() not in LOG_LEVELS:
        raise ConfigurationError(
            f"runtime.log_level must be one of {LOG_LEVELS}, "
            f"got {config.runtime.log_level!r}"
        )


def config_to_dict(config: ProcessingConfig) -> dict[str, Any]:
    """Convert :class:`ProcessingConfig` to a plain dictionary."""
    return asdict(config)
