#!/usr/bin/env python3
"""
Test framework detectors against project trees on disk
"""

import warnings

import pytest

from gitguard.detector import JavaDetector, NodeDetector, PythonDetector, deduplicate_detections
from gitguard.detector.base import _find_files_sync, boosted
from gitguard.detector.java import gradle_group_ids, pom_group_ids
from gitguard.detector.python import (
    parse_pipfile,
    parse_pyproject,
    parse_requirements,
    parse_setup_py,
)
from gitguard.models import Ecosystem

from helpers import detection


def by_id(detections):
    return {d.id: d for d in detections}


# Node

@pytest.mark.asyncio
async def test_nextjs_with_config_file(make_tree):
    root = make_tree({
        "package.json": {"dependencies": {"next": "^14.0"}},
        "next.config.js": "module.exports = {}",
    })
    found = by_id(await NodeDetector().detect(root))

    assert found["node"].confidence == 0.8
    assert found["node"].detected_at_path == "package.json"
    assert found["nextjs"].confidence == 1.0
    assert found["nextjs"].ecosystem is Ecosystem.NODE


@pytest.mark.asyncio
async def test_dev_dependencies_count(make_tree):
    root = make_tree({"package.json": {"devDependencies": {"react": "^18.0.0"}}})
    found = by_id(await NodeDetector().detect(root))
    assert found["react"].confidence == 0.85


@pytest.mark.asyncio
async def test_react_dom_alone_means_react(make_tree):
    root = make_tree({"package.json": {"dependencies": {"react-dom": "^18.0.0"}}})
    assert "react" in by_id(await NodeDetector().detect(root))


@pytest.mark.asyncio
async def test_monorepo_keeps_highest_confidence(make_tree):
    root = make_tree({
        "package.json": {"dependencies": {"vue": "^3.0.0"}},
        "packages/web/package.json": {"dependencies": {"vue": "^3.0.0"}},
        "packages/web/vue.config.js": "module.exports = {}",
    })
    detections = await NodeDetector().detect(root)
    found = by_id(detections)

    assert len([d for d in detections if d.id == "vue"]) == 1
    assert found["vue"].confidence == 0.95
    assert found["vue"].detected_at_path == "packages/web/package.json"
    # Confidence tie: the manifest closest to the root wins
    assert found["node"].detected_at_path == "package.json"


@pytest.mark.asyncio
async def test_node_modules_are_not_scanned(make_tree):
    root = make_tree({
        "package.json": {"dependencies": {}},
        "node_modules/next/package.json": {"dependencies": {"next": "14.0.0"}},
    })
    found = by_id(await NodeDetector().detect(root))
    assert "node" in found
    assert "nextjs" not in found


@pytest.mark.asyncio
async def test_malformed_package_json_is_skipped(make_tree):
    root = make_tree({
        "package.json": "{not json",
        "apps/site/package.json": {"dependencies": {"svelte": "^4.0.0"}},
    })
    found = by_id(await NodeDetector().detect(root))
    assert found["node"].detected_at_path == "apps/site/package.json"
    assert found["svelte"].confidence == 0.95


@pytest.mark.asyncio
async def test_non_object_package_json_is_skipped(make_tree):
    root = make_tree({"package.json": "[1, 2, 3]"})
    assert await NodeDetector().detect(root) == []


@pytest.mark.asyncio
async def test_no_package_json(tmp_path):
    assert await NodeDetector().detect(tmp_path) == []


# Python

def test_parse_requirements():
    content = "Django==4.2\n# comment\n-r other.txt\n\nrequests>=2.0\nuvicorn[standard]\n"
    assert parse_requirements(content) == ["Django", "requests", "uvicorn"]


def test_parse_pyproject_pep621():
    content = """
[project]
name = "demo"
dependencies = [
    "fastapi>=0.100",
    "uvicorn[standard]>=0.23",
]

[project.optional-dependencies]
test = ["pytest", "httpx"]
"""
    assert parse_pyproject(content) == ["fastapi", "uvicorn", "pytest", "httpx"]


def test_parse_pyproject_poetry():
    content = """
[tool.poetry]
name = "demo"

[tool.poetry.dependencies]
python = "^3.11"
Flask = "^3.0"

[tool.poetry.group.dev.dependencies]
pytest = "^7.0"
"""
    packages = parse_pyproject(content)
    assert "Flask" in packages
    assert "pytest" in packages
    assert "demo" not in packages


def test_parse_pipfile():
    content = '[packages]\ndjango = "*"\n\n[dev-packages]\npytest = "*"\n\n[requires]\npython_version = "3.11"\n'
    assert parse_pipfile(content) == ["django", "pytest"]


def test_parse_setup_py():
    content = "setup(\n    name='demo',\n    install_requires=['flask>=2', 'requests'],\n)\n"
    assert parse_setup_py(content) == ["flask", "requests"]


@pytest.mark.asyncio
async def test_django_from_requirements(make_tree):
    root = make_tree({"requirements.txt": "Django==4.2\n"})
    found = by_id(await PythonDetector().detect(root))

    assert found["python"].confidence == 0.8
    assert found["python"].detected_at_path == "requirements.txt"
    assert found["django"].confidence == 0.9


@pytest.mark.asyncio
async def test_django_with_manage_py(make_tree):
    root = make_tree({"requirements.txt": "django\n", "manage.py": "#!/usr/bin/env python\n"})
    found = by_id(await PythonDetector().detect(root))
    assert found["django"].confidence == 0.98


@pytest.mark.asyncio
async def test_manage_py_without_manifest(make_tree):
    root = make_tree({"manage.py": "import django\n"})
    found = by_id(await PythonDetector().detect(root))

    assert found["python"].detected_at_path == "*.py files"
    assert found["django"].confidence == 0.95
    assert found["django"].detected_at_path == "manage.py"


@pytest.mark.asyncio
async def test_fastapi_from_pyproject_with_config(make_tree):
    root = make_tree({
        "pyproject.toml": '[project]\nname = "api"\ndependencies = ["FastAPI>=0.100"]\n',
        "main.py": "from fastapi import FastAPI\n",
    })
    found = by_id(await PythonDetector().detect(root))
    assert found["python"].detected_at_path == "pyproject.toml"
    assert found["fastapi"].confidence == 0.9


@pytest.mark.asyncio
async def test_packages_are_unioned_across_manifests(make_tree):
    root = make_tree({
        "requirements.txt": "requests\n",
        "requirements-dev.txt": "pytest\n",
        "services/web/Pipfile": '[packages]\nflask = "*"\n',
    })
    found = by_id(await PythonDetector().detect(root))
    assert found["flask"].confidence == 0.85
    assert found["python"].detected_at_path in ("requirements.txt", "requirements-dev.txt")


@pytest.mark.asyncio
async def test_virtualenv_is_not_scanned(make_tree):
    root = make_tree({
        "venv/lib/site.py": "",
        "venv/requirements.txt": "django\n",
    })
    assert await PythonDetector().detect(root) == []


@pytest.mark.asyncio
async def test_plain_python_sources(make_tree):
    root = make_tree({"src/tool.py": "print('hi')\n"})
    found = by_id(await PythonDetector().detect(root))
    assert list(found) == ["python"]


@pytest.mark.asyncio
async def test_empty_tree(tmp_path):
    assert await PythonDetector().detect(tmp_path) == []


# Java

POM = """<project>
  <parent>
    <groupId>org.springframework.boot</groupId>
    <artifactId>spring-boot-starter-parent</artifactId>
  </parent>
  <groupId>com.example</groupId>
</project>
"""


def test_group_id_extraction():
    assert "org.springframework.boot" in pom_group_ids(POM)
    gradle = (
        "plugins {\n    id 'org.springframework.boot' version '3.2.0'\n}\n"
        "dependencies {\n    implementation 'com.google.guava:guava:32.0.0-jre'\n}\n"
    )
    groups = gradle_group_ids(gradle)
    assert "org.springframework.boot" in groups
    assert "com.google.guava" in groups


@pytest.mark.asyncio
async def test_maven_spring_boot(make_tree):
    root = make_tree({"pom.xml": POM})
    detections = await JavaDetector().detect(root)
    found = by_id(detections)

    assert [d.id for d in detections] == ["java", "maven", "spring-boot"]
    assert found["java"].confidence == 0.8
    assert found["maven"].confidence == 0.95
    assert found["spring-boot"].confidence == 0.9


@pytest.mark.asyncio
async def test_spring_boot_config_boost(make_tree):
    root = make_tree({
        "pom.xml": POM,
        "src/main/resources/application.yml": "server:\n  port: 8080\n",
    })
    found = by_id(await JavaDetector().detect(root))
    assert found["spring-boot"].confidence == 0.95


@pytest.mark.asyncio
async def test_gradle_kotlin_dsl(make_tree):
    root = make_tree({
        "build.gradle.kts": 'plugins {\n    id("org.springframework.boot") version "3.2.0"\n}\n',
    })
    found = by_id(await JavaDetector().detect(root))
    assert found["gradle"].display_name == "Gradle (Kotlin DSL)"
    assert found["gradle"].confidence == 0.95
    assert "spring-boot" in found


@pytest.mark.asyncio
async def test_build_output_is_not_scanned(make_tree):
    root = make_tree({"target/classes/META-INF/maven/pom.xml": POM})
    assert await JavaDetector().detect(root) == []


# Shared helpers

def test_boosted_is_capped():
    assert boosted(0.95, True) == 1.0
    assert boosted(0.98, True) == 1.0
    assert boosted(0.85, False) == 0.85
    assert boosted(0.85, True) == 0.9


def test_deduplicate_keeps_highest_confidence():
    kept = deduplicate_detections([
        detection("react", 0.85, "package.json"),
        detection("react", 0.90, "apps/web/package.json"),
    ])
    assert len(kept) == 1
    assert kept[0].confidence == 0.90


def test_deduplicate_tie_prefers_shallow_path():
    kept = deduplicate_detections([
        detection("node", 0.8, "apps/web/package.json"),
        detection("node", 0.8, "package.json"),
    ])
    assert kept[0].detected_at_path == "package.json"


def test_manifest_search_emits_no_deprecation_warnings(make_tree):
    root = make_tree({"package.json": {}, "node_modules/react/package.json": {}})
    with warnings.catch_warnings():
        warnings.simplefilter("error", DeprecationWarning)
        found = _find_files_sync(root, ["**/package.json"], ["node_modules/"])
    assert found == [root / "package.json"]
