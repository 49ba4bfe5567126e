"""
Heat map tile server

- Loads measurements from `measurements.csv_path` (config/params.yaml)
- Serves /tiles/{level}/{row}/{col}.png, produced on demand and cached in memory
- Optional endpoints: /gradient, /config, /stats, /health
"""
