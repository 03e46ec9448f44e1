"""
Transform module.

Perspective correction and manual boundary adjustment.
"""

from .manual import ManualAdjustment
from .perspective import PerspectiveTransformer, rectify, resolve_output_size

__all__ = ["ManualAdjustment", "PerspectiveTransformer", "rectify", "resolve_output_size"]
