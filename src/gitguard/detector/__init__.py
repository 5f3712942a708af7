"""Framework detection for project trees"""

from .base import FrameworkDetector, FrameworkSignature, deduplicate_detections
from .coordinator import DetectionCoordinator, default_detectors
from .java import JavaDetector
from .node import NodeDetector
from .python import PythonDetector

__all__ = [
    'DetectionCoordinator',
    'FrameworkDetector',
    'FrameworkSignature',
    'JavaDetector',
    'NodeDetector',
    'PythonDetector',
    'deduplicate_detections',
    'default_detectors',
]
