"""
Heat map tiles test suite

Structure:
- unit/: Unit tests for individual components (index, gradient, sector, layer, ...)
- integration/: HTTP tile server exercised end-to-end through FastAPI's TestClient
"""
