"""Exotel operations and callback persistence."""

from .callbacks import CallbackStore, clean_value
from .exotel import ExotelService

__all__ = ["CallbackStore", "ExotelService", "clean_value"]
