"""Renderers, overlay, display pipeline and capture."""
