"""
Java detector

Detects Java build tools and frameworks:
- Maven (pom.xml)
- Gradle (build.gradle, build.gradle.kts)
- Spring Boot (org.springframework.boot in either build descriptor)
"""

import re
from pathlib import Path
from typing import List, Union

from gitguard.detector.base import (
    BASE_CONFIDENCE,
    FrameworkDetector,
    boosted,
    deduplicate_detections,
)
from gitguard.exceptions import ProbeFailure
from gitguard.models import Ecosystem, FrameworkDetection
from gitguard.utils import get_logger

logger = get_logger(__name__)

BUILD_TOOL_CONFIDENCE = 0.95
SPRING_BOOT_CONFIDENCE = 0.9

SPRING_BOOT_GROUP = "org.springframework.boot"
SPRING_BOOT_CONFIG_FILES = (
    "src/main/resources/application.properties",
    "src/main/resources/application.yml",
    "src/main/resources/application.yaml",
)

_POM_GROUP_ID = re.compile(r"<groupId>\s*([^<\s]+)\s*</groupId>")
# implementation 'org.springframework.boot:spring-boot-starter-web'
_GRADLE_COORDINATE = re.compile(r"""["']([A-Za-z0-9_.-]+):[A-Za-z0-9_.-]+(?::[^"']*)?["']""")
# id 'org.springframework.boot' version '3.2.0'
_GRADLE_PLUGIN_ID = re.compile(r"""\bid\s*\(?\s*["']([A-Za-z0-9_.-]+)["']""")


def pom_group_ids(content: str) -> List[str]:
    """Every groupId in a pom, including parent and dependency entries"""
    return _POM_GROUP_ID.findall(content)


def gradle_group_ids(content: str) -> List[str]:
    """Groups from dependency coordinates and plugin ids in a Gradle script"""
    return _GRADLE_COORDINATE.findall(content) + _GRADLE_PLUGIN_ID.findall(content)


class JavaDetector(FrameworkDetector):
    """Reads every pom.xml and Gradle build script in the tree"""

    ecosystem = Ecosystem.JAVA
    trigger_files = ("pom.xml", "build.gradle", "build.gradle.kts")
    manifest_globs = ("**/pom.xml", "**/build.gradle", "**/build.gradle.kts")

    async def detect(self, project_root: Union[str, Path]) -> List[FrameworkDetection]:
        root = Path(project_root)
        detected: List[FrameworkDetection] = []

        for manifest in await self.find_manifests(root):
            relative_path = self.relative(root, manifest)
            is_maven = manifest.name == "pom.xml"

            try:
                content = await self.read_text(manifest)
            except ProbeFailure as e:
                self.log_probe_failure(root, e)
                continue

            detected.append(self.create_detection("java", "Java", relative_path, BASE_CONFIDENCE))

            if is_maven:
                detected.append(self.create_detection(
                    "maven", "Maven", relative_path, BUILD_TOOL_CONFIDENCE
                ))
                groups = pom_group_ids(content)
            else:
                name = "Gradle (Kotlin DSL)" if manifest.name.endswith(".kts") else "Gradle"
                detected.append(self.create_detection(
                    "gradle", name, relative_path, BUILD_TOOL_CONFIDENCE
                ))
                groups = gradle_group_ids(content)

            if SPRING_BOOT_GROUP in groups:
                config_found = await self.any_file_exists(manifest.parent, SPRING_BOOT_CONFIG_FILES)
                detected.append(self.create_detection(
                    "spring-boot",
                    "Spring Boot",
                    relative_path,
                    boosted(SPRING_BOOT_CONFIDENCE, config_found),
                ))

        logger.trace(f"JavaDetector found {len(detected)} raw detections in {root}")
        return deduplicate_detections(detected)
