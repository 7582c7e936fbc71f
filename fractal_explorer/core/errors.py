"""
Exception types raised by the fractal explorer engine.
"""


class FractalExplorerError(Exception):
    """Base class for all engine errors."""


class InvalidParameterError(FractalExplorerError, ValueError):
    """A parameter was rejected at an API boundary; prior state is kept."""


class RenderFailure(FractalExplorerError, RuntimeError):
    """A render pass or the hand-off of its buffer could not complete."""


class RenderCancelled(FractalExplorerError):
    """A render pass was superseded by a newer request and abandoned."""
