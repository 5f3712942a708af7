"""
Built-in rule catalog

Single source of truth for the ignore rules suggested per ecosystem and
framework. Loaded once at import time into immutable tuples.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Tuple

from gitguard.models import Ecosystem, Rule, Severity

CRIT = Severity.CRITICAL
REC = Severity.RECOMMENDED
OPT = Severity.OPTIONAL


@dataclass(frozen=True)
class RuleSet:
    """Rules for one ecosystem: base rules plus framework-specific rules"""
    ecosystem: Ecosystem
    name: str
    description: str
    base_rules: Tuple[Rule, ...]
    framework_rules: Mapping[str, Tuple[Rule, ...]] = field(default_factory=dict)

    @property
    def rule_count(self) -> int:
        return len(self.base_rules) + sum(len(rules) for rules in self.framework_rules.values())


def _rules(*entries) -> Tuple[Rule, ...]:
    return tuple(Rule(pattern=pattern, severity=severity, reason=reason)
                 for pattern, severity, reason in entries)


def _frameworks(**by_id) -> Mapping[str, Tuple[Rule, ...]]:
    return MappingProxyType({key.replace("_", "-"): _rules(*entries) for key, entries in by_id.items()})


NODE_RULES = RuleSet(
    ecosystem=Ecosystem.NODE,
    name="Node.js",
    description="JavaScript and TypeScript projects managed with npm, yarn or pnpm",
    base_rules=_rules(
        (".env", CRIT, "Environment files often contain API keys and secrets"),
        (".env.local", CRIT, "Local environment overrides usually contain secrets"),
        ("*.pem", CRIT, "Private keys and certificates must never be committed"),
        (".npmrc", CRIT, "May contain registry auth tokens"),
        ("node_modules/", REC, "Installed dependencies are restored from the lockfile"),
        ("dist/", REC, "Build output is generated from source"),
        ("build/", REC, "Build output is generated from source"),
        ("coverage/", REC, "Test coverage reports are generated"),
        ("npm-debug.log*", REC, "npm debug logs"),
        ("yarn-debug.log*", REC, "yarn debug logs"),
        ("yarn-error.log*", REC, "yarn error logs"),
        ("*.tsbuildinfo", REC, "TypeScript incremental build cache"),
        (".cache/", OPT, "Tool caches"),
        (".DS_Store", OPT, "macOS folder metadata"),
        (".vscode/", OPT, "Editor-specific settings"),
        (".idea/", OPT, "Editor-specific settings"),
    ),
    framework_rules=_frameworks(
        nextjs=(
            (".next/", REC, "Next.js build output and cache"),
            ("out/", REC, "Next.js static export output"),
            ("next-env.d.ts", OPT, "Generated Next.js type declarations"),
            (".vercel", OPT, "Vercel deployment metadata"),
        ),
        react=(
            ("build/", REC, "Create React App build output"),
            (".eslintcache", OPT, "ESLint cache"),
        ),
        vue=(
            (".nuxt/", REC, "Nuxt build output"),
            (".output/", REC, "Nuxt server output"),
            ("dist/", REC, "Vue build output"),
        ),
        angular=(
            (".angular/", REC, "Angular CLI cache"),
            ("tmp/", OPT, "Angular CLI temporary files"),
        ),
        vite=(
            ("dist-ssr/", REC, "Vite SSR build output"),
            ("*.local", CRIT, "Vite local env files may contain secrets"),
        ),
        svelte=(
            (".svelte-kit/", REC, "SvelteKit generated files"),
        ),
    ),
)

PYTHON_RULES = RuleSet(
    ecosystem=Ecosystem.PYTHON,
    name="Python",
    description="Python projects using pip, Poetry, Pipenv or setuptools",
    base_rules=_rules(
        (".env", CRIT, "Environment files often contain API keys and secrets"),
        ("*.pem", CRIT, "Private keys and certificates must never be committed"),
        (".pypirc", CRIT, "Contains package index credentials"),
        ("__pycache__/", REC, "Compiled bytecode is regenerated automatically"),
        ("*.pyc", REC, "Compiled bytecode"),
        ("venv/", REC, "Virtual environments are machine-specific"),
        (".venv/", REC, "Virtual environments are machine-specific"),
        ("*.egg-info/", REC, "Packaging metadata is generated"),
        ("dist/", REC, "Built distributions are generated"),
        ("build/", REC, "Build output is generated"),
        (".pytest_cache/", REC, "pytest cache"),
        (".mypy_cache/", REC, "mypy cache"),
        (".coverage", REC, "Coverage data file"),
        ("htmlcov/", REC, "Coverage HTML report"),
        (".tox/", OPT, "tox environments"),
        (".ipynb_checkpoints/", OPT, "Jupyter autosave checkpoints"),
        (".DS_Store", OPT, "macOS folder metadata"),
        (".idea/", OPT, "Editor-specific settings"),
        (".vscode/", OPT, "Editor-specific settings"),
    ),
    framework_rules=_frameworks(
        django=(
            ("db.sqlite3", CRIT, "Development database may contain real user data"),
            ("local_settings.py", CRIT, "Local Django settings usually hold SECRET_KEY and credentials"),
            ("media/", REC, "User-uploaded files"),
            ("staticfiles/", REC, "Collected static files are generated"),
            ("*.log", REC, "Application logs"),
        ),
        flask=(
            ("instance/", CRIT, "Flask instance folder holds secrets and local config"),
            (".webassets-cache", OPT, "Flask-Assets cache"),
        ),
        fastapi=(
            ("*.db", CRIT, "Local databases may contain real data"),
            ("*.log", REC, "Application logs"),
        ),
    ),
)

JAVA_RULES = RuleSet(
    ecosystem=Ecosystem.JAVA,
    name="Java",
    description="JVM projects built with Maven or Gradle",
    base_rules=_rules(
        ("*.jks", CRIT, "Java keystores contain private keys"),
        ("*.keystore", CRIT, "Keystores contain private keys"),
        ("*.class", REC, "Compiled classes are generated"),
        ("*.jar", REC, "Built archives are generated"),
        ("*.war", REC, "Built archives are generated"),
        ("hs_err_pid*", REC, "JVM crash logs"),
        ("*.log", REC, "Application logs"),
        (".idea/", OPT, "Editor-specific settings"),
        ("*.iml", OPT, "IntelliJ module files"),
        (".DS_Store", OPT, "macOS folder metadata"),
    ),
    framework_rules=_frameworks(
        maven=(
            ("target/", REC, "Maven build output"),
            ("release.properties", OPT, "Maven release plugin state"),
            (".mvn/wrapper/maven-wrapper.jar", OPT, "Maven wrapper binary is downloaded"),
        ),
        gradle=(
            (".gradle/", REC, "Gradle cache"),
            ("build/", REC, "Gradle build output"),
            ("local.properties", CRIT, "Local properties may contain SDK paths and signing secrets"),
        ),
        spring_boot=(
            ("application-local.properties", CRIT, "Local Spring profile usually contains credentials"),
            ("application-local.yml", CRIT, "Local Spring profile usually contains credentials"),
        ),
    ),
)

RULE_SETS: Mapping[Ecosystem, RuleSet] = MappingProxyType({
    Ecosystem.NODE: NODE_RULES,
    Ecosystem.PYTHON: PYTHON_RULES,
    Ecosystem.JAVA: JAVA_RULES,
})
