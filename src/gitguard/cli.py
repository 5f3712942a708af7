#!/usr/bin/env python3
"""
GitGuard command line interface

Detects frameworks, suggests .gitignore rules, checks staged files before a
commit and watches a project for risky new files.

Exit codes: 0 success, 1 risky staged files or a failed write, 2 usage or
environment error.
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from gitguard import __version__
from gitguard.detector.coordinator import DetectionCoordinator
from gitguard.exceptions import SettingsError, StagedFilesUnavailable
from gitguard.gitignore import GitignoreFile
from gitguard.models import FrameworkDetection, ModificationResult, Rule, Severity
from gitguard.notifications import ConsoleNotifier
from gitguard.rules.engine import RuleEngine
from gitguard.settings import GitGuardSettings, SettingsStore, load_settings
from gitguard.staged_scanner import (
    GitStagedFileSource,
    critical_warnings,
    fix_warnings,
    format_warnings,
    pre_commit_check,
    scan_staged_files,
)
from gitguard.utils import configure_logging, get_logger
from gitguard.watcher.monitor import FileCreationMonitor
from gitguard.workspace import active_rules, scan_workspace, suggest_missing_rules

logger = get_logger("gitguard.cli")

EXIT_OK = 0
EXIT_RISK = 1
EXIT_USAGE = 2


class GitGuardCLI:
    """Main GitGuard CLI implementation"""

    def __init__(self):
        self.rule_engine = RuleEngine()
        self.gitignore = GitignoreFile()

    def build_parser(self) -> argparse.ArgumentParser:
        parser = argparse.ArgumentParser(
            prog='gitguard',
            description='GitGuard - keep secrets and build artifacts out of git',
            formatter_class=argparse.RawDescriptionHelpFormatter,
            epilog=self.get_usage_examples()
        )
        parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
        parser.add_argument('--log-level', choices=['TRACE', 'DEBUG', 'INFO', 'WARNING', 'ERROR'],
                            help='Log level (default: GITGUARD_LOG_LEVEL or INFO)')
        parser.add_argument('--log-file', help='Also write logs to this rotating file')

        subparsers = parser.add_subparsers(dest='command', help='Commands')

        detect_parser = subparsers.add_parser('detect', help='Detect frameworks in project roots')
        detect_parser.add_argument('paths', nargs='*', default=['.'], help='Project roots (default: .)')
        detect_parser.add_argument('--json', action='store_true', help='Output JSON')

        scan_parser = subparsers.add_parser('scan', help='Scan a project for risky files')
        scan_parser.add_argument('path', nargs='?', default='.', help='Project root (default: .)')
        scan_parser.add_argument('--json', action='store_true', help='Output JSON')

        suggest_parser = subparsers.add_parser('suggest', help='Show rules missing from .gitignore')
        suggest_parser.add_argument('path', nargs='?', default='.', help='Project root (default: .)')
        suggest_parser.add_argument('--apply', action='store_true',
                                    help='Append the missing rules to .gitignore')
        suggest_parser.add_argument('--min-severity', choices=[s.value for s in Severity],
                                    help='Only include rules at or above this severity')

        init_parser = subparsers.add_parser('init', help='Create a .gitignore for detected frameworks')
        init_parser.add_argument('path', nargs='?', default='.', help='Project root (default: .)')

        add_parser = subparsers.add_parser('add', help='Append one pattern to .gitignore')
        add_parser.add_argument('pattern', help='Pattern to add')
        add_parser.add_argument('--reason', help='Why the pattern is ignored')
        add_parser.add_argument('--path', default='.', help='Project root (default: .)')

        staged_parser = subparsers.add_parser('check-staged', help='Check staged files before a commit')
        staged_parser.add_argument('path', nargs='?', default='.', help='Repository root (default: .)')
        staged_parser.add_argument('--fix', action='store_true',
                                   help='Append the matched patterns to .gitignore')
        staged_parser.add_argument('--interactive', action='store_true',
                                   help='Ask what to do instead of only reporting')

        watch_parser = subparsers.add_parser('watch', help='Warn about risky files as they are created')
        watch_parser.add_argument('path', nargs='?', default='.', help='Project root (default: .)')

        return parser

    def parse_args(self, argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
        """Parse command line arguments"""
        return self.build_parser().parse_args(argv)

    def get_usage_examples(self) -> str:
        """Get usage examples for help text"""
        return """
Examples:
  gitguard detect                  # Detect frameworks in the current directory
  gitguard suggest --apply         # Add missing rules to .gitignore
  gitguard check-staged            # Use from a pre-commit hook
  gitguard add "*.pem" --reason "Private keys"
  gitguard watch                   # Warn about risky files as they appear

Environment Variables:
  GITGUARD_LOG_LEVEL       Log level (TRACE, DEBUG, INFO, WARNING, ERROR)
  GITGUARD_LOG_FORMAT      Set to 'json' for JSON log lines
  GITGUARD_<SETTING>       Override a .gitguard.json setting, e.g. GITGUARD_DEBOUNCE_SECONDS
"""

    def run(self, argv: Optional[Sequence[str]] = None) -> int:
        """Main entry point"""
        args = self.parse_args(argv)
        configure_logging(args.log_level, args.log_file)

        if not args.command:
            self.build_parser().print_help()
            return EXIT_OK

        # Route to command handlers
        handler_name = f'cmd_{args.command.replace("-", "_")}'
        handler = getattr(self, handler_name, None)
        if handler is None:
            print(f"❌ Error: Unknown command '{args.command}'", file=sys.stderr)
            return EXIT_USAGE

        try:
            return handler(args)
        except SettingsError as e:
            print(f"❌ Invalid settings: {e}", file=sys.stderr)
            return EXIT_USAGE
        except StagedFilesUnavailable as e:
            print(f"❌ Cannot read staged files: {e}", file=sys.stderr)
            return EXIT_USAGE

    def _root(self, path: str) -> Optional[Path]:
        root = Path(path).resolve()
        if not root.is_dir():
            print(f"❌ Not a directory: {path}", file=sys.stderr)
            return None
        return root

    async def _rules_for_root(self, root: Path,
                              settings: GitGuardSettings) -> Tuple[List[FrameworkDetection], List[Rule]]:
        detections = await DetectionCoordinator([root]).detect_all()
        return detections, active_rules(detections, settings, self.rule_engine)

    def _report_write(self, result: ModificationResult) -> int:
        if not result.success:
            print(f"❌ Failed to update {result.file_path}: {result.error}", file=sys.stderr)
            return EXIT_RISK
        if result.added_patterns:
            print(f"✅ Added {len(result.added_patterns)} pattern(s) to {result.file_path}")
        if result.existing_patterns:
            print(f"ℹ️  {len(result.existing_patterns)} pattern(s) already present")
        return EXIT_OK

    # Command handlers
    def cmd_detect(self, args: argparse.Namespace) -> int:
        """Handle detect command"""
        roots = []
        for path in args.paths:
            root = self._root(path)
            if root is None:
                return EXIT_USAGE
            roots.append(root)

        detections = asyncio.run(DetectionCoordinator(roots).detect_all())

        if args.json:
            print(json.dumps([d.to_dict() for d in detections], indent=2))
            return EXIT_OK

        if not detections:
            print("No frameworks detected")
            return EXIT_OK

        for detection in detections:
            print(f"  {detection.display_name:<22} {detection.confidence:>5.2f}  "
                  f"{detection.detected_at_path}")
        return EXIT_OK

    def cmd_scan(self, args: argparse.Namespace) -> int:
        """Handle scan command"""
        root = self._root(args.path)
        if root is None:
            return EXIT_USAGE

        settings = load_settings(root)
        result = asyncio.run(scan_workspace(root, settings=settings, gitignore=self.gitignore,
                                            rule_engine=self.rule_engine))

        if args.json:
            print(json.dumps({
                'frameworks': [d.to_dict() for d in result.frameworks],
                'suggestedRules': [
                    {'pattern': r.pattern, 'severity': r.severity.value, 'reason': r.reason}
                    for r in result.suggested_rules
                ],
                'riskyFiles': result.risky_files,
                'hasGitignore': result.has_gitignore,
                'missingCriticalPatterns': result.missing_critical_patterns,
            }, indent=2))
            return EXIT_OK

        names = ", ".join(d.display_name for d in result.frameworks) or "none"
        print(f"🔍 Frameworks: {names}")
        print(f"📄 .gitignore: {'present' if result.has_gitignore else 'missing'}")
        if result.missing_critical_patterns:
            print(f"🚨 Missing critical patterns: {', '.join(result.missing_critical_patterns)}")
        print(f"💡 {len(result.suggested_rules)} suggested rule(s)")
        if result.risky_files:
            print(f"⚠️  {len(result.risky_files)} risky file(s) not covered by .gitignore:")
            for path in result.risky_files:
                print(f"  • {path}")
        return EXIT_OK

    def cmd_suggest(self, args: argparse.Namespace) -> int:
        """Handle suggest command"""
        root = self._root(args.path)
        if root is None:
            return EXIT_USAGE

        settings = load_settings(root)
        if args.min_severity:
            settings.min_severity = args.min_severity
        detections, rules = asyncio.run(self._rules_for_root(root, settings))
        missing = self.gitignore.missing_rules(root, rules)

        if not missing:
            print("✅ .gitignore already covers every suggested rule")
            return EXIT_OK

        for rule in missing:
            print(f"  {rule.severity.icon} {rule.pattern:<24} {rule.reason}")

        if not args.apply:
            print(f"\nRun 'gitguard suggest --apply' to add {len(missing)} pattern(s)")
            return EXIT_OK

        label = ", ".join(d.display_name for d in detections) or None
        if self.gitignore.exists(root):
            result = self.gitignore.append_rules(root, missing, label)
        else:
            result = self.gitignore.create_with_rules(root, missing, detections)
        return self._report_write(result)

    def cmd_init(self, args: argparse.Namespace) -> int:
        """Handle init command"""
        root = self._root(args.path)
        if root is None:
            return EXIT_USAGE

        settings = load_settings(root)
        detections, rules = asyncio.run(self._rules_for_root(root, settings))
        if not detections:
            print("ℹ️  No frameworks detected, nothing to add")
            return EXIT_OK
        if self.gitignore.exists(root):
            print(f"ℹ️  {self.gitignore.path_for(root)} exists, appending missing rules")
        return self._report_write(self.gitignore.create_with_rules(root, rules, detections))

    def cmd_add(self, args: argparse.Namespace) -> int:
        """Handle add command"""
        root = self._root(args.path)
        if root is None:
            return EXIT_USAGE
        return self._report_write(self.gitignore.add_pattern(root, args.pattern, args.reason))

    def cmd_check_staged(self, args: argparse.Namespace) -> int:
        """Handle check-staged command"""
        root = self._root(args.path)
        if root is None:
            return EXIT_USAGE

        settings = load_settings(root)
        if not settings.enabled or not settings.pre_commit_check:
            logger.info("Pre-commit check disabled in settings")
            return EXIT_OK

        _, rules = asyncio.run(self._rules_for_root(root, settings))
        source = GitStagedFileSource(root)

        if args.interactive:
            allowed = asyncio.run(pre_commit_check(source, rules, ConsoleNotifier(), self.gitignore))
            return EXIT_OK if allowed else EXIT_RISK

        warnings = scan_staged_files(source, rules)
        if not warnings:
            print("✅ No risky files staged")
            return EXIT_OK

        print(format_warnings(warnings))
        if args.fix:
            if self._report_write(fix_warnings(root, warnings, self.gitignore)) != EXIT_OK:
                return EXIT_RISK
            print("Unstage the files with 'git rm --cached <file>' before committing")

        return EXIT_RISK if critical_warnings(warnings) else EXIT_OK

    def cmd_watch(self, args: argparse.Namespace) -> int:
        """Handle watch command"""
        root = self._root(args.path)
        if root is None:
            return EXIT_USAGE

        store = SettingsStore(root)
        if not store.settings.enabled or not store.settings.watch_file_creation:
            print("ℹ️  File creation watching is disabled in settings")
            return EXIT_OK

        try:
            asyncio.run(self._watch(root, store))
        except KeyboardInterrupt:
            pass
        return EXIT_OK

    async def _watch(self, root: Path, store: SettingsStore):
        detections, rules = await self._rules_for_root(root, store.settings)
        notifier = ConsoleNotifier()
        if store.settings.auto_suggest and detections:
            await suggest_missing_rules(root, detections, rules, notifier,
                                        store.settings, self.gitignore)

        monitor = FileCreationMonitor(root, rules, notifier, settings_store=store,
                                      gitignore=self.gitignore, rule_engine=self.rule_engine)
        print(f"👀 Watching {root} ({len(rules)} rules), press Ctrl+C to stop")
        monitor.start()
        try:
            while True:
                await asyncio.sleep(1)
        finally:
            monitor.stop()
            await monitor.drain()


def main():
    """Main entry point"""
    cli = GitGuardCLI()
    sys.exit(cli.run())


if __name__ == '__main__':
    main()
