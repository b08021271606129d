"""
CLI entry point: compute the next LWMA bits from a header history file.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from .config import ConfigError, load_config
from .core import difficulty
from .core.header import HeaderFormatError, load_headers
from .core.lwma import LwmaEngine, MissingBlockError, RetargetError
from .logging import setup_logging


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Compute the next LWMA difficulty bits")
    parser.add_argument("--headers", type=Path, required=True, help="JSON file with height/timestamp/bits records")
    parser.add_argument("--config", type=Path, help="Path to config JSON")
    parser.add_argument("--network", help="Network preset (mainnet, testnet, regtest)")
    parser.add_argument("--height", type=int, help="Height of the block being built (default: tip + 1)")
    parser.add_argument("--timestamp", type=int, help="Timestamp of the block being built (default: tip + spacing)")
    parser.add_argument("--log-level", help="Log level (debug, info, warning, error)")
    parser.add_argument("--log-file", type=Path, help="Also log to this file")
    return parser.parse_args(argv)


def build_overrides(args: argparse.Namespace) -> dict:
    overrides = {}
    if args.network:
        overrides["network"] = args.network
    if args.log_level:
        overrides["log_level"] = args.log_level
    if args.log_file:
        overrides["log_file"] = str(args.log_file)
    return overrides


def run(args: argparse.Namespace) -> dict:
    config = load_config(args.config.resolve() if args.config else None, overrides=build_overrides(args))
    log_level = getattr(logging, config.log_level.upper(), logging.INFO)
    logger = setup_logging(config.log_file, level=log_level)

    params = config.network_params()
    engine = LwmaEngine(params)
    window = load_headers(args.headers)
    tip = window.tip
    if tip is None:
        raise HeaderFormatError(f"{args.headers}: no headers")
    height = args.height if args.height is not None else tip.height + 1
    if args.timestamp is not None:
        timestamp = args.timestamp
    elif height - 1 in window:
        timestamp = window[height - 1].timestamp + params.pow_target_spacing
    else:
        raise MissingBlockError(height - 1)
    logger.info("Loaded %s headers, computing %s bits for height %s", len(window), params.name, height)
    if not engine.is_active(height):
        logger.warning("LWMA activates at height %s on %s", params.enable_height, params.name)

    target = engine.next_target(height, timestamp, window)
    bits = difficulty.target_to_compact(target)
    # Headers whose bits decode to zero carry no work; rejecting them is chain validation.
    window_work = sum(
        difficulty.block_work(window[h].bits)
        for h in range(height - params.averaging_window, height)
        if difficulty.compact_to_target(window[h].bits) > 0
    )
    next_target = difficulty.compact_to_target(bits)
    return {
        "network": params.name,
        "height": height,
        "timestamp": timestamp,
        "bits": f"{bits:08x}",
        "target": f"{next_target:064x}",
        "difficulty": difficulty.target_to_difficulty(next_target, params.pow_limit) if next_target > 0 else None,
        "window_work": window_work,
    }


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    try:
        result = run(args)
    except (ConfigError, HeaderFormatError, RetargetError, difficulty.DifficultyError, OSError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc
    print(json.dumps(result, indent=2))


if __name__ == "__main__":
    main()
