"""
Python detector

Detects Python projects and these frameworks:
- Django
- Flask
- FastAPI

Dependencies are collected from requirements*.txt, pyproject.toml, Pipfile
and setup.py. The TOML and setup.py readers are lightweight, section-scoped
regex extraction, not full parsers: they cover the common layouts only.
"""

import re
from pathlib import Path
from typing import List, Optional, Set, Union

from gitguard.detector.base import (
    BASE_CONFIDENCE,
    FrameworkDetector,
    FrameworkSignature,
    boosted,
)
from gitguard.exceptions import ProbeFailure
from gitguard.models import Ecosystem, FrameworkDetection
from gitguard.utils import get_logger

logger = get_logger(__name__)

PYTHON_SIGNATURES = (
    FrameworkSignature(
        id="django",
        name="Django",
        packages=("django",),
        config_files=("manage.py", "settings.py"),
        confidence=0.9,
        marker_files=("manage.py",),
        marker_confidence=0.98,
        marker_only_confidence=0.95,
    ),
    FrameworkSignature(
        id="flask",
        name="Flask",
        packages=("flask",),
        config_files=("app.py", "wsgi.py"),
        confidence=0.85,
    ),
    FrameworkSignature(
        id="fastapi",
        name="FastAPI",
        packages=("fastapi",),
        config_files=("main.py",),
        confidence=0.85,
    ),
)

_NAME = r"[A-Za-z0-9][A-Za-z0-9._-]*"
_REQUIREMENT_NAME = re.compile(rf"^({_NAME})")
_QUOTED_NAME = re.compile(rf"""["']\s*({_NAME})""")
_TABLE_KEY = re.compile(rf"""^\s*["']?({_NAME})["']?\s*=""", re.MULTILINE)
# Closing bracket of an array, not of an extras marker like "pkg[extra]"
_ARRAY_END = r"(?=\s*(?:,|\)|#|$))"
_SECTION_HEADER = re.compile(r"^\s*\[", re.MULTILINE)
_DEPENDENCY_ARRAY = re.compile(r"^\s*dependencies\s*=\s*\[(.*?)\]" + _ARRAY_END, re.DOTALL | re.MULTILINE)
_OPTIONAL_ARRAY = re.compile(r"=\s*\[(.*?)\]" + _ARRAY_END, re.DOTALL | re.MULTILINE)
_INSTALL_REQUIRES = re.compile(r"install_requires\s*=\s*\[(.*?)\]" + _ARRAY_END, re.DOTALL | re.MULTILINE)


def parse_requirements(content: str) -> List[str]:
    """Package names from a requirements file, skipping comments and flags"""
    packages = []
    for line in content.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith('#') or stripped.startswith('-'):
            continue
        match = _REQUIREMENT_NAME.match(stripped)
        if match:
            packages.append(match.group(1))
    return packages


def toml_section(content: str, header: str) -> Optional[str]:
    """
    Body of a ``[header]`` table, up to the next table header

    Args:
        content: TOML text
        header: Table name without brackets, e.g. ``tool.poetry.dependencies``

    Returns:
        Section body or None when the table is absent
    """
    match = re.search(rf"^\s*\[{re.escape(header)}\]\s*$", content, re.MULTILINE)
    if not match:
        return None
    rest = content[match.end():]
    next_header = _SECTION_HEADER.search(rest)
    return rest[:next_header.start()] if next_header else rest


def parse_pyproject(content: str) -> List[str]:
    """Dependencies from PEP 621, optional-dependencies and Poetry tables"""
    packages: List[str] = []

    project = toml_section(content, "project")
    if project is not None:
        for array in _DEPENDENCY_ARRAY.findall(project):
            packages.extend(_QUOTED_NAME.findall(array))

    optional = toml_section(content, "project.optional-dependencies")
    if optional is not None:
        for array in _OPTIONAL_ARRAY.findall(optional):
            packages.extend(_QUOTED_NAME.findall(array))

    for table in ("project.dependencies", "tool.poetry.dependencies", "tool.poetry.dev-dependencies"):
        section = toml_section(content, table)
        if section is not None:
            packages.extend(_TABLE_KEY.findall(section))

    for group in re.findall(r"^\s*\[(tool\.poetry\.group\.[^\]]+\.dependencies)\]", content, re.MULTILINE):
        section = toml_section(content, group)
        if section is not None:
            packages.extend(_TABLE_KEY.findall(section))

    return packages


def parse_pipfile(content: str) -> List[str]:
    packages: List[str] = []
    for table in ("packages", "dev-packages"):
        section = toml_section(content, table)
        if section is not None:
            packages.extend(_TABLE_KEY.findall(section))
    return packages


def parse_setup_py(content: str) -> List[str]:
    packages: List[str] = []
    for array in _INSTALL_REQUIRES.findall(content):
        packages.extend(_QUOTED_NAME.findall(array))
    return packages


class PythonDetector(FrameworkDetector):
    """Unions dependencies from every Python manifest in the tree"""

    ecosystem = Ecosystem.PYTHON
    trigger_files = ("requirements.txt", "pyproject.toml", "setup.py", "Pipfile")
    manifest_globs = ("requirements*.txt", "pyproject.toml", "Pipfile", "setup.py")
    signatures = PYTHON_SIGNATURES

    async def detect(self, project_root: Union[str, Path]) -> List[FrameworkDetection]:
        root = Path(project_root)
        manifests = await self.find_manifests(root)
        packages = await self._collect_packages(root, manifests)

        has_sources = bool(manifests) or bool(
            await self.find_files(root, ["*.py"], limit=1)
        )
        if not has_sources:
            return []

        if manifests:
            source = self._preferred_source(root, manifests)
        else:
            source = "*.py files"

        detected = [self.create_detection("python", "Python", source, BASE_CONFIDENCE)]

        for signature in self.signatures:
            declared = any(package.lower() in packages for package in signature.packages)
            marker = await self.first_existing(root, signature.marker_files)

            if declared:
                config_found = await self.any_file_exists(root, signature.config_files)
                confidence = boosted(signature.confidence, config_found)
                if marker:
                    confidence = max(confidence, signature.marker_confidence)
                detected.append(self.create_detection(signature.id, signature.name, source, confidence))
            elif marker:
                # Entry-point script alone identifies the framework
                detected.append(self.create_detection(
                    signature.id, signature.name, marker, signature.marker_only_confidence
                ))

        return detected

    async def _collect_packages(self, root: Path, manifests: List[Path]) -> Set[str]:
        packages: Set[str] = set()
        for manifest in manifests:
            try:
                content = await self.read_text(manifest)
            except ProbeFailure as e:
                self.log_probe_failure(root, e)
                continue

            name = manifest.name
            if name == "pyproject.toml":
                found = parse_pyproject(content)
            elif name == "Pipfile":
                found = parse_pipfile(content)
            elif name == "setup.py":
                found = parse_setup_py(content)
            else:
                found = parse_requirements(content)

            logger.debug(f"{self.relative(root, manifest)}: {len(found)} packages")
            # Python package names are case-insensitive
            packages.update(package.lower() for package in found)
        return packages

    def _preferred_source(self, root: Path, manifests: List[Path]) -> str:
        for manifest in manifests:
            if manifest.name.startswith("requirements"):
                return self.relative(root, manifest)
        for manifest in manifests:
            if manifest.name == "pyproject.toml":
                return self.relative(root, manifest)
        return self.relative(root, manifests[0])
