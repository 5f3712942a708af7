"""
Detection coordinator

Runs every registered detector against every project root and caches the
results per root. The cache is only a performance aid: ``detect_all`` with
``force_refresh=True`` always re-probes the disk.
"""

from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

from gitguard.detector.base import FrameworkDetector, deduplicate_detections
from gitguard.detector.java import JavaDetector
from gitguard.detector.node import NodeDetector
from gitguard.detector.python import PythonDetector
from gitguard.models import Ecosystem, FrameworkDetection
from gitguard.utils import get_logger

logger = get_logger(__name__)


def default_detectors() -> List[FrameworkDetector]:
    """Registered detectors in evaluation order"""
    return [NodeDetector(), PythonDetector(), JavaDetector()]


class DetectionCoordinator:
    """Owns the per-root detection cache"""

    def __init__(self, roots: Sequence[Union[str, Path]],
                 detectors: Optional[Sequence[FrameworkDetector]] = None):
        self.roots: List[Path] = [Path(root) for root in roots]
        self.detectors: List[FrameworkDetector] = (
            list(detectors) if detectors is not None else default_detectors()
        )
        self._cache: Dict[Path, List[FrameworkDetection]] = {}

    async def detect_all(self, force_refresh: bool = False) -> List[FrameworkDetection]:
        """
        Detect frameworks in every project root

        Args:
            force_refresh: Ignore cached results and re-run the detectors

        Returns:
            Detections for all roots, in root order
        """
        if not self.roots:
            logger.debug("No project roots open, nothing to detect")
            return []

        results: List[FrameworkDetection] = []
        for root in self.roots:
            cached = self._cache.get(root)
            if cached is not None and not force_refresh:
                logger.trace(f"Using cached detections for {root}")
                results.extend(cached)
                continue
            results.extend(await self.detect_in_root(root))
        return results

    async def detect_in_root(self, root: Union[str, Path]) -> List[FrameworkDetection]:
        """Run all detectors against one root and replace its cache entry"""
        root = Path(root)
        detections: List[FrameworkDetection] = []

        for detector in self.detectors:
            try:
                found = await detector.detect(root)
            except Exception as e:
                # One failing detector must not hide the others
                logger.error(f"Detector {detector.name} failed for {root}: {e}", exc_info=True)
                continue
            logger.debug(f"{detector.name}: {len(found)} detections in {root}")
            detections.extend(found)

        detections = deduplicate_detections(detections)
        self._cache[root] = detections

        if detections:
            summary = ", ".join(f"{d.display_name} ({d.confidence:.2f})" for d in detections)
            logger.info(f"Detected in {root}: {summary}")
        else:
            logger.info(f"No frameworks detected in {root}")
        return detections

    def clear_cache(self):
        self._cache.clear()
        logger.debug("Detection cache cleared")

    def cached(self, root: Union[str, Path]) -> Optional[List[FrameworkDetection]]:
        entry = self._cache.get(Path(root))
        return list(entry) if entry is not None else None

    @staticmethod
    def rule_ecosystems(detections: Sequence[FrameworkDetection]) -> List[Ecosystem]:
        """Distinct ecosystems, in order of first appearance"""
        seen: List[Ecosystem] = []
        for detection in detections:
            if detection.ecosystem not in seen:
                seen.append(detection.ecosystem)
        return seen

    @staticmethod
    def framework_ids(detections: Sequence[FrameworkDetection]) -> List[str]:
        seen: List[str] = []
        for detection in detections:
            if detection.id not in seen:
                seen.append(detection.id)
        return seen
