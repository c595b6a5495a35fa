"""YAML configuration loading with dotlist overrides."""

from __future__ import annotations

import importlib
from pathlib import Path
from typing import Any, Iterable

import yaml

try:
    OmegaConf = importlib.import_module("omegaconf").OmegaConf
except ModuleNotFoundError as exc:
    raise RuntimeError(
        "aecnr requires 'omegaconf'. Install it with `pip install omegaconf`."
    ) from exc


def _to_plain_dict(cfg: Any, *, context: str) -> dict[str, Any]:
    container = OmegaConf.to_container(cfg, resolve=True)
    if not isinstance(container, dict):
        raise TypeError(f"Expected mapping in {context}, got {type(container)!r}")
    return {str(key): item for key, item in container.items()}


def _clean(overrides: Iterable[str] | None) -> list[str]:
    return [item for item in (overrides or []) if item]


def load_yaml(
    path: str | Path,
    *,
    overrides: Iterable[str] | None = None,
) -> dict[str, Any]:
    """Load a YAML mapping and apply ``key.sub=value`` overrides."""
    cfg = OmegaConf.load(Path(path))
    override_list = _clean(overrides)
    if override_list:
        cfg = OmegaConf.merge(cfg, OmegaConf.from_dotlist(override_list))
    return _to_plain_dict(cfg, context=str(path))


def load_config_mapping(
    path: str | Path | None = None,
    overrides: Iterable[str] | None = None,
) -> dict[str, Any]:
    """Return the raw mapping from ``path`` (or an empty one) plus overrides."""
    if path is not None:
        return load_yaml(path, overrides=overrides)
    override_list = _clean(overrides)
    if not override_list:
        return {}
    return _to_plain_dict(OmegaConf.from_dotlist(override_list), context="overrides")


def save_yaml(path: str | Path, data: dict[str, Any]) -> None:
    """Write a configuration snapshot to YAML, creating parent directories."""
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    with out.open("w", encoding="utf-8") as handle:
        yaml.safe_dump(data, handle, sort_keys=False)
