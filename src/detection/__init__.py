"""
Document Scanner - Detection Module

This module handles document boundary detection in frames and still images.
"""

from .base import Detector
from .contours import ContourCandidate, ContourFitter
from .curvature import CurvatureEstimator
from .detector import DocumentDetector
from .edges import EdgeExtractor
from .preprocess import PreprocessResult, Preprocessor

__all__ = [
    'Detector',
    'DocumentDetector',
    'Preprocessor',
    'PreprocessResult',
    'EdgeExtractor',
    'ContourFitter',
    'ContourCandidate',
    'CurvatureEstimator',
]
