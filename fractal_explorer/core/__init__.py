"""View state, viewport mapping and fractal definitions."""
