#!/usr/bin/env python3
"""
Render every heat map tile of one pyramid level to PNG files.

Writes {out}/{level}/{row}/{row}_{col}.png. Tiles that fail are reported and
skipped; empty (fully transparent) tiles are skipped unless --keep-empty.

Measurements come from the CSV named in the config, or are synthesized.

Examples:
  python scripts/render_tiles.py --level 1 --out out/tiles
  python scripts/render_tiles.py --synthetic 5000 --level 2 --interval quantiles
  python scripts/render_tiles.py --synthetic 2000 --write-csv data/measurements.csv --level 0
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import List, Optional

import cv2

# Allow running as a plain script from the repository root
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from common.logging_setup import get_logger, setup_logging  # noqa: E402
from common.types import MeasuredLocation  # noqa: E402
from heatmap.config import DEFAULT_CONFIG_PATH, HeatMapConfig  # noqa: E402
from heatmap.io import load_measurements_csv, synthetic_measurements, write_measurements_csv  # noqa: E402
from heatmap.layer import HeatMapLayer  # noqa: E402


log = get_logger("render_tiles")


def render_level(layer: HeatMapLayer, level: int, out_root: Path, keep_empty: bool = False) -> dict:
    """Produce and write all tiles at `level`; returns counters."""
    rows, cols = layer.tile_count(level)
    counts = {"written": 0, "empty": 0, "failed": 0}
    for row in range(rows):
        for col in range(cols):
            tile = layer.tile(level, row, col)
            texture = layer.produce_tile(tile, suppress_redraw=True)
            if texture is None:
                counts["failed"] += 1
                continue
            if not keep_empty and not texture.image[..., 3].any():
                counts["empty"] += 1
                continue
            path = out_root / f"{level}/{row}/{row}_{col}.png"
            path.parent.mkdir(parents=True, exist_ok=True)
            cv2.imwrite(str(path), cv2.cvtColor(texture.image, cv2.COLOR_RGBA2BGRA))
            counts["written"] += 1
    return counts


def main(argv: Optional[List[str]] = None) -> int:
    ap = argparse.ArgumentParser(description="Render heat map tiles for one level")
    ap.add_argument("--config", default=DEFAULT_CONFIG_PATH)
    ap.add_argument("--csv", default=None, help="Override measurements CSV path")
    ap.add_argument("--synthetic", type=int, default=None, help="Use N synthetic measurements instead of a CSV")
    ap.add_argument("--seed", type=int, default=0, help="Seed for --synthetic")
    ap.add_argument("--write-csv", default=None, help="Also save the measurements used to this CSV")
    ap.add_argument("--level", type=int, default=0)
    ap.add_argument("--interval", choices=["continuous", "quantiles"], default=None)
    ap.add_argument("--radius", type=float, default=None)
    ap.add_argument("--blur", type=float, default=None)
    ap.add_argument("--out", default="out/tiles")
    ap.add_argument("--keep-empty", action="store_true", help="Write fully transparent tiles too")
    args = ap.parse_args(argv)

    config = HeatMapConfig.from_yaml(args.config)
    setup_logging(config.log_level, force=True)

    measured: List[MeasuredLocation]
    if args.synthetic is not None:
        measured = synthetic_measurements(args.synthetic, seed=args.seed)
    else:
        measured = load_measurements_csv(args.csv or config.csv_path)
    if args.write_csv:
        write_measurements_csv(args.write_csv, measured)

    layer = HeatMapLayer.from_config(config, measured)
    if args.interval:
        layer.interval_type = args.interval
    if args.radius is not None:
        layer.radius = args.radius
    if args.blur is not None:
        layer.blur = args.blur

    counts = render_level(layer, args.level, Path(args.out), keep_empty=args.keep_empty)
    log.info("Rendered level", extra={"extra": {"level": args.level, "out": args.out, **counts}})
    print(f"Level {args.level}: {counts['written']} written, {counts['empty']} empty, {counts['failed']} failed")
    return 0 if counts["failed"] == 0 else 1


if __name__ == "__main__":
    raise SystemExit(main())
