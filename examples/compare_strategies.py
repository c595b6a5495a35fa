"""Compare all processing strategies on one scene.

The scene is either loaded from a directory with one WAV file per stem or
simulated with a fixed seed. Every strategy is run once and its SNR and SER
improvements and speech distortion are printed.

Usage
-----
Simulate a scene and compare all strategies:

``python examples/compare_strategies.py --seed 2``

Use an existing scene with a custom rank:

``python examples/compare_strategies.py --scene-dir outputs/scene --set rank_s=2``
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Sequence

from aecnr.cli import configure_logging, load_processing_config
from aecnr.dataloaders import load_recording, simulate_scene
from aecnr.pipeline import run_strategies


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Run and compare echo/noise suppression strategies on one scene.",
    )
    parser.add_argument(
        "--scene-dir",
        type=Path,
        default=None,
        help="Directory with stem WAVs. A synthetic scene is used when omitted.",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Synthetic scene seed. Defaults to runtime.seed of the config.",
    )
    parser.add_argument(
        "--config", type=Path, default=None, help="Processing config YAML."
    )
    parser.add_argument(
        "--set",
        action="append",
        default=[],
        help="OmegaConf-style config override, e.g. rank_s=2",
    )
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> None:
    args = _parse_args(argv)
    cfg = load_processing_config(args.config, args.set)
    configure_logging(cfg.runtime.log_level)
    if args.scene_dir is None:
        seed = cfg.runtime.seed if args.seed is None else args.seed
        recording = simulate_scene(seed=seed)
    else:
        recording = load_recording(args.scene_dir)
    logging.info(
        "Scene: %.1f s, M=%d, L=%d, fs=%d",
        recording.duration,
        recording.n_mics,
        recording.n_loudspeakers,
        recording.sample_rate,
    )

    for run in run_strategies(recording, cfg):
        metrics = run.metrics
        print(f"{run.strategy}:")
        print(f"\t SNR improvement: {metrics.snr_improvement:f}")
        print(f"\t SER improvement: {metrics.ser_improvement:f}")
        print(f"\t SD: {metrics.sd:f}\n")


if __name__ == "__main__":
    main()
