"""Image encoding for the LED matrix."""

from .images import image_to_matrix

__all__ = ["image_to_matrix"]
