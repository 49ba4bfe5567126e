from __future__ import annotations

import argparse
from typing import Dict, List, Optional

import cv2
import numpy as np
import uvicorn
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel

from common.logging_setup import get_logger, setup_logging
from heatmap.config import DEFAULT_CONFIG_PATH, HeatMapConfig
from heatmap.io import load_measurements_csv
from heatmap.layer import HeatMapLayer


log = get_logger("heatmap_server")


class ConfigUpdate(BaseModel):
    """Body of PUT /config; omitted fields are left unchanged."""
    interval_type: Optional[str] = None
    scale: Optional[List[str]] = None
    radius: Optional[float] = None
    blur: Optional[float] = None


def encode_png(rgba: np.ndarray) -> bytes:
    """RGBA uint8 array -> PNG bytes."""
    ok, buf = cv2.imencode(".png", cv2.cvtColor(rgba, cv2.COLOR_RGBA2BGRA))
    if not ok:
        raise RuntimeError("PNG encoding failed")
    return buf.tobytes()


def _gradient_payload(layer: HeatMapLayer) -> Dict:
    return {
        "interval_type": layer.interval_type.value,
        "scale": list(layer.scale),
        "stops": [{"position": p, "color": c} for p, c in sorted(layer.gradient.items())],
    }


def create_app(layer: HeatMapLayer) -> FastAPI:
    app = FastAPI(title="Heat Map Tile API", version="1.0.0")
    app.state.layer = layer

    # (Optional) CORS for globe clients served from elsewhere
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    def health():
        return {
            "status": "ok",
            "layer": {
                "display_name": layer.display_name,
                "measurements": len(layer.index),
                "cache_key": layer.cache_key,
            },
            "tiles": layer.cache.stats(),
            "retrievals": layer.registry.stats(),
        }

    @app.get("/stats")
    def stats():
        return {"tiles": layer.cache.stats(), "retrievals": layer.registry.stats()}

    @app.get("/gradient")
    def gradient():
        return _gradient_payload(layer)

    @app.put("/config")
    def update_config(body: ConfigUpdate):
        """
        Apply drawing settings all-or-nothing. An invalid body fails with 400
        and changes nothing; otherwise cached tiles are dropped. Tiles still
        rendering with the old settings are not cached when they finish.
        """
        try:
            changed = layer.configure(
                interval_type=body.interval_type,
                scale=body.scale,
                radius=body.radius,
                blur=body.blur,
            )
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        if changed:
            layer.cache.clear()
        return {**_gradient_payload(layer), "radius": layer.radius, "blur": layer.blur}

    @app.get("/tiles/{level}/{row}/{col}.png")
    def tile_png(level: int, row: int, col: int):
        """
        PNG for one pyramid tile.

        Order:
          1) in-memory cache
          2) on-demand production (deduplicated per tile)
        """
        try:
            tile = layer.tile(level, row, col)
        except ValueError as e:
            raise HTTPException(status_code=404, detail=f"tile_outside_pyramid: {e}")

        texture = layer.cache.get(tile.image_path)
        if texture is None:
            texture = layer.produce_tile(tile, suppress_redraw=True)
        if texture is None:
            if layer.registry.in_flight(tile.image_path):
                return JSONResponse(
                    {"error": "tile_in_flight"}, status_code=503, headers={"Retry-After": "1"}
                )
            return JSONResponse({"error": "tile_absent"}, status_code=404)

        headers = {
            "Cache-Control": "public, max-age=60",
            "X-Tile-Level": str(level),
            "X-Tile-Row": str(row),
            "X-Tile-Col": str(col),
        }
        return Response(content=encode_png(texture.image), media_type="image/png", headers=headers)

    return app


def build_layer(config: HeatMapConfig) -> HeatMapLayer:
    measured = load_measurements_csv(config.csv_path)
    return HeatMapLayer.from_config(config, measured)


# -------- local dev entrypoint --------
def main() -> None:
    ap = argparse.ArgumentParser(description="Heat map tile server")
    ap.add_argument("--config", default=DEFAULT_CONFIG_PATH)
    ap.add_argument("--host", default=None)
    ap.add_argument("--port", type=int, default=None)
    args = ap.parse_args()

    config = HeatMapConfig.from_yaml(args.config)
    setup_logging(config.log_level, force=True)
    layer = build_layer(config)
    host = args.host or config.host
    port = int(args.port or config.port)
    log.info(
        "Heat map server starting",
        extra={"extra": {"host": host, "port": port, "measurements": len(layer.index)}},
    )
    uvicorn.run(create_app(layer), host=host, port=port)


if __name__ == "__main__":
    main()
