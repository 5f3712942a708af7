"""
Node.js / JavaScript detector

Detects Node.js projects and these frameworks:
- Next.js
- Angular
- Vue
- Svelte
- Vite
- React
"""

from pathlib import Path
from typing import Dict, List, Union

from gitguard.detector.base import (
    BASE_CONFIDENCE,
    FrameworkDetector,
    FrameworkSignature,
    boosted,
    deduplicate_detections,
)
from gitguard.exceptions import ProbeFailure
from gitguard.models import Ecosystem, FrameworkDetection
from gitguard.utils import get_logger

logger = get_logger(__name__)

# Order matters: more specific frameworks first
NODE_SIGNATURES = (
    FrameworkSignature(
        id="nextjs",
        name="Next.js",
        packages=("next",),
        config_files=("next.config.js", "next.config.mjs", "next.config.ts"),
        confidence=0.95,
    ),
    FrameworkSignature(
        id="angular",
        name="Angular",
        packages=("@angular/core",),
        config_files=("angular.json",),
        confidence=0.95,
    ),
    FrameworkSignature(
        id="vue",
        name="Vue",
        packages=("vue",),
        config_files=("vue.config.js", "vite.config.ts", "nuxt.config.js"),
        confidence=0.9,
    ),
    FrameworkSignature(
        id="svelte",
        name="Svelte",
        packages=("svelte",),
        config_files=("svelte.config.js",),
        confidence=0.95,
    ),
    FrameworkSignature(
        id="vite",
        name="Vite",
        packages=("vite",),
        config_files=("vite.config.js", "vite.config.ts"),
        confidence=0.9,
    ),
    FrameworkSignature(
        id="react",
        name="React",
        packages=("react", "react-dom"),
        confidence=0.85,
    ),
)


def declared_dependencies(package_json: Dict) -> Dict[str, str]:
    """Merge dependencies and devDependencies, ignoring malformed sections"""
    merged: Dict[str, str] = {}
    for section in ("dependencies", "devDependencies"):
        deps = package_json.get(section)
        if isinstance(deps, dict):
            merged.update({str(name): str(version) for name, version in deps.items()})
    return merged


class NodeDetector(FrameworkDetector):
    """Reads every package.json outside node_modules"""

    ecosystem = Ecosystem.NODE
    trigger_files = ("package.json",)
    manifest_globs = ("**/package.json",)
    signatures = NODE_SIGNATURES

    async def detect(self, project_root: Union[str, Path]) -> List[FrameworkDetection]:
        root = Path(project_root)
        detected: List[FrameworkDetection] = []

        for manifest in await self.find_manifests(root):
            relative_path = self.relative(root, manifest)
            try:
                package_json = await self.read_json(manifest)
            except ProbeFailure as e:
                self.log_probe_failure(root, e)
                continue

            deps = declared_dependencies(package_json)

            # A package.json always means Node.js
            detected.append(self.create_detection("node", "Node.js", relative_path, BASE_CONFIDENCE))

            for signature in self.signatures:
                if not any(package in deps for package in signature.packages):
                    continue
                config_found = await self.any_file_exists(manifest.parent, signature.config_files)
                detected.append(self.create_detection(
                    signature.id,
                    signature.name,
                    relative_path,
                    boosted(signature.confidence, config_found),
                ))

        return deduplicate_detections(detected)
