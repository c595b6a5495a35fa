"""Command-line interface for simulating and processing echo/noise scenes."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Sequence

import yaml

from aecnr.config_schema import (
    ProcessingConfig,
    config_to_dict,
    parse_processing_config,
)
from aecnr.configs import load_config_mapping, save_yaml
from aecnr.dataloaders.recording import load_recording, save_recording
from aecnr.dataloaders.synthetic import simulate_scene
from aecnr.filters.composer import Strategy
from aecnr.logging_utils import JsonlLogger
from aecnr.pipeline import run_strategies


def configure_logging(level: str) -> None:
    """Configure logging format and level for CLI commands."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)-8s | %(message)s",
    )


def load_processing_config(
    path: Path | None, overrides: Sequence[str] | None = None
) -> ProcessingConfig:
    """Load a YAML config (or defaults) with dotlist overrides applied."""
    return parse_processing_config(load_config_mapping(path, overrides))


def simulate_command(args: argparse.Namespace) -> None:
    """Write a synthetic scene as one WAV file per stem.

    The seed is ``--seed`` when given, otherwise ``runtime.seed`` of the
    resolved configuration.
    """
    cfg = load_processing_config(args.config, args.set or None)
    configure_logging(cfg.runtime.log_level)
    seed = cfg.runtime.seed if args.seed is None else args.seed
    recording = simulate_scene(
        seed=seed,
        sample_rate=args.sample_rate,
        duration_sec=args.duration_sec,
        n_mics=args.n_mics,
        n_loudspeakers=args.n_loudspeakers,
        snr_db=args.snr_db,
        ser_db=args.ser_db,
    )
    metadata = {
        "seed": seed,
        "sample_rate": recording.sample_rate,
        "n_mics": recording.n_mics,
        "n_loudspeakers": recording.n_loudspeakers,
        "snr_db": args.snr_db,
        "ser_db": args.ser_db,
    }
    path = save_recording(args.output_dir, recording, metadata=metadata)
    logging.info(
        "Wrote %.1f s scene (M=%d, L=%d) to %s",
        recording.duration,
        recording.n_mics,
        recording.n_loudspeakers,
        path,
    )


def process_command(args: argparse.Namespace) -> None:
    """Run the selected strategies on a scene directory."""
    cfg = load_processing_config(args.config, args.set or None)
    configure_logging(cfg.runtime.log_level)

    recording = load_recording(args.scene_dir)
    output_root = Path(args.output_dir or cfg.runtime.output_dir)
    output_root.mkdir(parents=True, exist_ok=True)
    save_yaml(output_root / "config.yaml", config_to_dict(cfg))

    runs = run_strategies(recording, cfg, args.strategy or None)
    results = JsonlLogger(output_root / "results.jsonl")
    for run in runs:
        record = run.to_record()
        record["scene"] = str(args.scene_dir)
        results.write(record)
        if not args.no_save_audio:
            save_recording(output_root / run.strategy, run.output)
    logging.info("Finished %d strategies. Results: %s", len(runs), results.path)


def show_config_command(args: argparse.Namespace) -> None:
    """Print the fully resolved processing configuration."""
    cfg = load_processing_config(args.config, args.set or None)
    print(yaml.safe_dump(config_to_dict(cfg), sort_keys=False), end="")


def _add_config_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to a processing config YAML. Defaults are used when omitted.",
    )
    parser.add_argument(
        "--set",
        action="append",
        default=[],
        help="OmegaConf-style config override, e.g. stft.fft_size=1024",
    )


class _ListStrategiesAction(argparse.Action):
    def __call__(self, parser, namespace, values, option_string=None):
        for name in Strategy.names():
            print(name)
        parser.exit()


def build_parser() -> argparse.ArgumentParser:
    """Build argument parser for the ``aecnr`` command."""
    parser = argparse.ArgumentParser(
        description="Combined acoustic echo cancellation and noise reduction."
    )
    parser.add_argument(
        "--list-strategies",
        nargs=0,
        action=_ListStrategiesAction,
        help="Print available strategy names and exit.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sim_parser = sub.add_parser("simulate", help="Write a synthetic scene.")
    sim_parser.add_argument("output_dir", type=Path, help="Scene output directory.")
    _add_config_arguments(sim_parser)
    sim_parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Random seed. Defaults to runtime.seed of the configuration.",
    )
    sim_parser.add_argument(
        "--duration-sec", type=float, default=8.0, help="Scene length in seconds."
    )
    sim_parser.add_argument(
        "--sample-rate", type=int, default=8000, help="Sampling rate in Hz."
    )
    sim_parser.add_argument("--n-mics", type=int, default=2, help="Microphones.")
    sim_parser.add_argument(
        "--n-loudspeakers",
        type=int,
        default=1,
        help=(
            "Loudspeakers. A scene with 0 loudspeakers has no echo activity, "
            "so none of the strategies can process it."
        ),
    )
    sim_parser.add_argument(
        "--snr-db", type=float, default=0.0, help="Speech-to-noise ratio in dB."
    )
    sim_parser.add_argument(
        "--ser-db", type=float, default=6.0, help="Speech-to-echo ratio in dB."
    )
    sim_parser.set_defaults(handler=simulate_command)

    proc_parser = sub.add_parser("process", help="Process a scene directory.")
    proc_parser.add_argument(
        "scene_dir",
        type=Path,
        help=(
            "Directory with one WAV file per stem. The scene needs at least one "
            "loudspeaker: all strategies estimate noise over far-end-only frames."
        ),
    )
    _add_config_arguments(proc_parser)
    proc_parser.add_argument(
        "--strategy",
        action="append",
        default=[],
        help="Strategy to run (repeatable). Defaults to the configured list.",
    )
    proc_parser.add_argument(
        "--output-dir",
        type=Path,
        default=None,
        help="Output directory. Defaults to runtime.output_dir.",
    )
    proc_parser.add_argument(
        "--no-save-audio",
        action="store_true",
        help="Disable writing processed waveforms.",
    )
    proc_parser.set_defaults(handler=process_command)

    show_parser = sub.add_parser("show-config", help="Print resolved configuration.")
    _add_config_arguments(show_parser)
    show_parser.set_defaults(handler=show_config_command)

    return parser


def main(argv: Sequence[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    args.handler(args)


if __name__ == "__main__":
    main()
