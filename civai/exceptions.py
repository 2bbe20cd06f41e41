"""
Exception types raised by the network and evolution layers.

All of them subclass ValueError so callers that already guard
network construction with ``except ValueError`` keep working.
"""


class ShapeMismatchError(ValueError):
    """Array shapes disagree with a network's declared topology."""


class DeserializationError(ValueError):
    """A persisted network stream is truncated or malformed."""


class ConfigurationError(ValueError):
    """Invalid training parameters, detected before any generation runs."""
