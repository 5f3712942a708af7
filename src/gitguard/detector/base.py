"""
Base class and shared helpers for framework detectors

Each detector covers one ecosystem. Detectors hold no mutable state; all
file-system probes go through the helpers here, which run blocking I/O in the
default executor and raise ProbeFailure on read or parse problems.
"""

import asyncio
import json
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union

import pathspec

from gitguard.exceptions import MalformedManifest, ProbeFailure
from gitguard.models import Ecosystem, FrameworkDetection
from gitguard.utils import get_logger

logger = get_logger(__name__)

BASE_CONFIDENCE = 0.8
CONFIG_FILE_BOOST = 0.05

# Vendor and build output directories never searched for manifests
DEFAULT_EXCLUDED_DIRS = (
    ".git/",
    "node_modules/",
    "venv/",
    ".venv/",
    "env/",
    ".env/",
    "__pycache__/",
    "target/",
    "build/",
    ".gradle/",
)


@dataclass(frozen=True)
class FrameworkSignature:
    """
    How to recognize one framework

    Attributes:
        id: Framework identifier used as the rule catalog key
        name: Display name
        packages: Dependency names, any one of which identifies the framework
        config_files: Files whose presence boosts confidence by 0.05
        confidence: Base confidence when a dependency is found
        marker_files: Entry points that identify the framework on their own
        marker_confidence: Confidence when a dependency and a marker are both present
        marker_only_confidence: Confidence when only a marker is present
    """
    id: str
    name: str
    packages: Tuple[str, ...]
    config_files: Tuple[str, ...] = ()
    confidence: float = 0.85
    marker_files: Tuple[str, ...] = ()
    marker_confidence: float = 0.98
    marker_only_confidence: float = 0.95


def boosted(confidence: float, config_found: bool) -> float:
    """Apply the config-file boost, capped at 1.0"""
    if config_found:
        confidence = confidence + CONFIG_FILE_BOOST
    return round(min(1.0, confidence), 4)


def deduplicate_detections(detections: Iterable[FrameworkDetection]) -> List[FrameworkDetection]:
    """
    Keep one detection per framework id

    The highest confidence wins. On a tie, the detection whose source path
    is closer to the project root wins. First-seen order of ids is kept.
    """
    by_id: Dict[str, FrameworkDetection] = {}
    for detection in detections:
        existing = by_id.get(detection.id)
        if existing is None:
            by_id[detection.id] = detection
        elif detection.confidence > existing.confidence:
            by_id[detection.id] = detection
        elif detection.confidence == existing.confidence and detection.depth < existing.depth:
            by_id[detection.id] = detection
    return list(by_id.values())


def _find_files_sync(root: Path, include: Sequence[str], exclude: Sequence[str],
                     limit: Optional[int] = None) -> List[Path]:
    include_spec = pathspec.PathSpec.from_lines('gitwildmatch', include)
    exclude_spec = pathspec.PathSpec.from_lines('gitwildmatch', exclude)

    found = []
    for dirpath, dirnames, filenames in os.walk(root):
        rel_dir = Path(dirpath).relative_to(root)
        # Prune excluded directories so we never descend into them
        dirnames[:] = sorted(
            d for d in dirnames
            if not exclude_spec.match_file((rel_dir / d).as_posix() + "/")
        )
        for name in sorted(filenames):
            rel = (rel_dir / name).as_posix()
            if include_spec.match_file(rel) and not exclude_spec.match_file(rel):
                found.append(root / rel)
                if limit is not None and len(found) >= limit:
                    return found

    # Root-level manifests first
    found.sort(key=lambda p: (len(p.relative_to(root).parts), p.as_posix()))
    return found


class FrameworkDetector(ABC):
    """
    Detects frameworks of one ecosystem inside a project root

    Subclasses declare ``ecosystem``, ``trigger_files`` and ``manifest_globs``
    and implement ``detect``. ``detect`` must not raise on I/O or parse
    failures; it logs them and returns what it could determine.
    """

    ecosystem: Ecosystem
    # Files whose presence makes running this detector worthwhile
    trigger_files: Tuple[str, ...] = ()
    manifest_globs: Tuple[str, ...] = ()
    excluded_dirs: Tuple[str, ...] = DEFAULT_EXCLUDED_DIRS

    @property
    def name(self) -> str:
        return type(self).__name__

    @abstractmethod
    async def detect(self, project_root: Union[str, Path]) -> List[FrameworkDetection]:
        """Return detections for the project rooted at ``project_root``"""

    async def _run_blocking(self, func, *args):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, func, *args)

    async def find_files(self, root: Path, include: Sequence[str],
                         exclude: Optional[Sequence[str]] = None,
                         limit: Optional[int] = None) -> List[Path]:
        """
        Find files under root matching gitwildmatch globs

        Args:
            root: Project root
            include: Patterns to include (e.g. ``**/package.json``)
            exclude: Patterns to skip, defaults to the detector's excluded dirs
            limit: Stop after this many matches

        Returns:
            Absolute paths, shallowest first
        """
        exclude = self.excluded_dirs if exclude is None else exclude
        return await self._run_blocking(_find_files_sync, root, list(include), list(exclude), limit)

    async def find_manifests(self, root: Path) -> List[Path]:
        return await self.find_files(root, self.manifest_globs)

    async def file_exists(self, path: Path) -> bool:
        return await self._run_blocking(path.is_file)

    async def first_existing(self, directory: Path, names: Iterable[str]) -> Optional[str]:
        """Name of the first file in ``names`` that exists in directory"""
        for name in names:
            if await self.file_exists(directory / name):
                return name
        return None

    async def any_file_exists(self, directory: Path, names: Iterable[str]) -> bool:
        return await self.first_existing(directory, names) is not None

    async def read_text(self, path: Path) -> str:
        try:
            return await self._run_blocking(lambda: path.read_text(encoding='utf-8'))
        except (OSError, UnicodeDecodeError) as e:
            raise ProbeFailure(path, f"cannot read manifest: {e}") from e

    async def read_json(self, path: Path) -> Dict[str, Any]:
        text = await self.read_text(path)
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise MalformedManifest(path, f"invalid JSON: {e}") from e
        if not isinstance(data, dict):
            raise MalformedManifest(path, "expected a JSON object")
        return data

    def create_detection(self, framework_id: str, name: str, detected_at: str,
                         confidence: float) -> FrameworkDetection:
        return FrameworkDetection(
            id=framework_id,
            display_name=name,
            detected_at_path=detected_at,
            confidence=confidence,
            ecosystem=self.ecosystem,
        )

    @staticmethod
    def relative(root: Path, path: Path) -> str:
        return path.relative_to(root).as_posix()

    def log_probe_failure(self, root: Path, error: ProbeFailure):
        logger.warning(f"{self.name}: skipping manifest under {root}: {error}")
