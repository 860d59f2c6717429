# src/detectors/base.py
"""
Abstract base class for drift detectors.

Each detector module keeps its logic in plain module-level functions and
registers a thin class wrapper here. The wrapper reads its thresholds from
the InspectConfig it was built with and exposes a uniform detect().

Usage:
    @DetectorRegistry.register_detector
    class CustomDetector(BaseDetector):
        timing_key = "custom"

        def detect(self, messages, **kwargs):
            # access self.config for thresholds/weights
            ...
"""
from abc import ABC, abstractmethod
from typing import List, Any, Type

from drift_config import InspectConfig


class BaseDetector(ABC):
    """
    Abstract base class for drift detectors.

    Accepts an InspectConfig (defaults when omitted) and enforces a
    consistent detect() interface.
    """

    timing_key: str = ""
    # Run order; ties between equally ranked events keep this order
    priority: int = 100

    def __init__(self, config: InspectConfig | None = None):
        self.config = config or InspectConfig()

    @abstractmethod
    def detect(self, messages: list, **kwargs) -> List[Any]:
        """
        Analyze transcript messages (and optional facts=...) and return the
        drift events found, in emission order.
        """
        pass


class DetectorRegistry:
    """Registry for all active detectors, run in priority order."""
    _detectors: List[Type[BaseDetector]] = []

    @classmethod
    def register_detector(cls, detector_class: Type[BaseDetector]):
        if detector_class not in cls._detectors:
            cls._detectors.append(detector_class)
        return detector_class

    @classmethod
    def get_detectors(cls, config: InspectConfig | None = None) -> List[BaseDetector]:
        ordered = sorted(cls._detectors, key=lambda d: d.priority)
        return [detector(config) for detector in ordered]
