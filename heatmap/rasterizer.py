from __future__ import annotations

"""
Default point rasterizer for heat map tiles.

Two passes, as a canvas-based heat map draws them:
  1) intensity: every point stamps a soft disk (radius + Gaussian blur) into a
     single alpha channel with source-over compositing; the point's alpha is
     its measure times the layer's increment per intensity, clamped to [0, 1].
  2) colorize: alpha is looked up in a 256-entry palette interpolated between
     the gradient stops; the output alpha is the accumulated intensity.
"""

import math
from functools import lru_cache
from typing import Mapping, Protocol, Sequence, Tuple

import cv2
import numpy as np
from PIL import ImageColor

from common.geo import geo2pix_many
from common.types import MeasuredLocation, Sector


PALETTE_SIZE = 256


class Rasterizer(Protocol):
    """Anything that paints measured points into an RGBA raster."""

    def render(
        self,
        points: Sequence[MeasuredLocation],
        sector: Sector,
        width: int,
        height: int,
        radius: float,
        blur: float,
        gradient: Mapping[float, str],
        intensity_increment: float,
    ) -> np.ndarray: ...


# -----------------------------
# Colors
# -----------------------------

def resolve_color(color: str) -> Tuple[int, int, int, int]:
    """CSS color name or #rgb/#rrggbb(aa) -> RGBA tuple (0..255)."""
    try:
        return tuple(ImageColor.getcolor(str(color), "RGBA"))  # type: ignore[return-value]
    except ValueError:
        raise ValueError(f"unknown color {color!r}") from None


def gradient_palette(gradient: Mapping[float, str], size: int = PALETTE_SIZE) -> np.ndarray:
    """
    Linear interpolation between gradient stops sampled at `size` positions
    over [0, 1]; positions before the first / after the last stop take that
    stop's color. Returns uint8 array (size, 4).
    """
    if not gradient:
        raise ValueError("gradient must have at least one stop")
    stops = sorted((float(pos), resolve_color(c)) for pos, c in gradient.items())
    positions = np.array([p for p, _ in stops], dtype=float)
    colors = np.array([c for _, c in stops], dtype=float)
    xs = np.linspace(0.0, 1.0, size)
    palette = np.empty((size, 4), dtype=float)
    for ch in range(4):
        palette[:, ch] = np.interp(xs, positions, colors[:, ch])
    return np.clip(np.rint(palette), 0, 255).astype(np.uint8)


# -----------------------------
# Intensity pass
# -----------------------------

@lru_cache(maxsize=32)
def point_stamp(radius: float, blur: float) -> np.ndarray:
    """Soft disk of `radius` px blurred by a Gaussian with sigma = blur / 2."""
    half = int(math.ceil(radius + 2.0 * blur)) + 1
    size = 2 * half + 1
    stamp = np.zeros((size, size), dtype=np.float32)
    cv2.circle(stamp, (half, half), max(1, int(round(radius))), 1.0, thickness=-1, lineType=cv2.LINE_8)
    if blur > 0:
        stamp = cv2.GaussianBlur(stamp, (0, 0), sigmaX=blur / 2.0)
    stamp = np.clip(stamp, 0.0, 1.0)
    stamp.setflags(write=False)
    return stamp


def accumulate_intensity(
    points: Sequence[MeasuredLocation],
    sector: Sector,
    width: int,
    height: int,
    radius: float,
    blur: float,
    intensity_increment: float,
) -> np.ndarray:
    """Alpha field (height, width) float32 in [0, 1]."""
    alpha = np.zeros((height, width), dtype=np.float32)
    if not points:
        return alpha

    stamp = point_stamp(float(radius), float(blur))
    half = stamp.shape[0] // 2

    lats = np.fromiter((p.latitude for p in points), dtype=float, count=len(points))
    lons = np.fromiter((p.longitude for p in points), dtype=float, count=len(points))
    measures = np.fromiter((p.measure for p in points), dtype=float, count=len(points))
    xs, ys = geo2pix_many(lats, lons, sector, width, height)
    strengths = np.clip(measures * float(intensity_increment), 0.0, 1.0)

    for x, y, a in zip(np.rint(xs).astype(int), np.rint(ys).astype(int), strengths):
        if a <= 0.0:
            continue
        x0, y0 = x - half, y - half
        x1, y1 = x0 + stamp.shape[1], y0 + stamp.shape[0]
        cx0, cy0 = max(0, x0), max(0, y0)
        cx1, cy1 = min(width, x1), min(height, y1)
        if cx1 <= cx0 or cy1 <= cy0:
            continue
        s = stamp[cy0 - y0 : cy1 - y0, cx0 - x0 : cx1 - x0] * np.float32(a)
        dst = alpha[cy0:cy1, cx0:cx1]
        # source-over: a_out = a_src + a_dst * (1 - a_src)
        alpha[cy0:cy1, cx0:cx1] = s + dst * (1.0 - s)
    return alpha


def colorize(alpha: np.ndarray, palette: np.ndarray) -> np.ndarray:
    """Map an alpha field through `palette`; returns RGBA uint8 (H, W, 4)."""
    idx = np.clip(np.rint(alpha * (palette.shape[0] - 1)), 0, palette.shape[0] - 1).astype(np.intp)
    rgba = palette[idx].copy()
    rgba[..., 3] = np.clip(np.rint(alpha * 255.0), 0, 255).astype(np.uint8)
    return rgba


class ColoredRasterizer:
    """Default Rasterizer: intensity accumulation + gradient colorization."""

    def render(
        self,
        points: Sequence[MeasuredLocation],
        sector: Sector,
        width: int,
        height: int,
        radius: float,
        blur: float,
        gradient: Mapping[float, str],
        intensity_increment: float,
    ) -> np.ndarray:
        if width <= 0 or height <= 0:
            raise ValueError("raster width/height must be > 0")
        alpha = accumulate_intensity(points, sector, width, height, radius, blur, intensity_increment)
        return colorize(alpha, gradient_palette(gradient))
