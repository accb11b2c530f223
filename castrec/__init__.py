"""Record, replay, concatenate, convert and upload terminal sessions in the asciicast format."""

__version__ = "0.1.0"
__all__ = ["__version__"]