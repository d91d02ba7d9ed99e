"""CLI entrypoints for abigen commands."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Dict, Sequence

from .changelog import PRIMARY_TAG
from .config import DEFAULT_CONFIG_NAME, ConfigError
from .logging import configure_logging, get_logger, report_warnings
from .modules import CollisionError
from .orchestrator import DEFAULT_PACKAGE, ChangelogRunner, GenerateOptions, Generator
from .registry import MANIFEST_FILENAME


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    kwargs: dict[str, object] = {
        "action": "store_true",
        "help": "Increase log verbosity for troubleshooting.",
    }
    if suppress_default:
        kwargs["default"] = argparse.SUPPRESS
    else:
        kwargs["default"] = False
    parser.add_argument(
        "-v",
        "--verbose",
        **kwargs,
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="abigen",
        description="Generate TypeScript ABI modules from compiled contracts and track ABI changes.",
    )
    _add_verbose_option(parser)
    parser.add_argument(
        "--log-file",
        default=None,
        help="Also write detailed logs to this file.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    generate_parser = subparsers.add_parser(
        "generate",
        help="Discover compiled artifacts and write ABI modules plus the manifest.",
    )
    _add_verbose_option(generate_parser, suppress_default=True)
    generate_parser.add_argument(
        "--config",
        default=DEFAULT_CONFIG_NAME,
        help=f"Path to the generation config (defaults to {DEFAULT_CONFIG_NAME}).",
    )
    generate_parser.add_argument(
        "--no-build",
        action="store_true",
        help="Skip each source's build command and use existing artifacts.",
    )
    generate_parser.add_argument(
        "--repo",
        action="append",
        default=[],
        metavar="[ID=]REPO",
        help="Override a source repo; without ID= the override applies to all sources.",
    )
    generate_parser.add_argument(
        "--ref",
        action="append",
        default=[],
        metavar="[ID=]REF",
        help="Override a source ref (branch, tag or commit); without ID= it applies to all sources.",
    )

    changelog_parser = subparsers.add_parser(
        "changelog",
        help="Diff the local ABI manifest against the last published release.",
    )
    _add_verbose_option(changelog_parser, suppress_default=True)
    changelog_parser.add_argument(
        "--manifest",
        default=MANIFEST_FILENAME,
        help=f"Current manifest written by `abigen generate` (defaults to {MANIFEST_FILENAME}).",
    )
    changelog_parser.add_argument(
        "--tag",
        default=PRIMARY_TAG,
        help="npm dist-tag to compare against; newer of the tag and latest wins.",
    )
    changelog_parser.add_argument(
        "--against",
        default=None,
        help="Compare against a local manifest file instead of the registry.",
    )
    changelog_parser.add_argument(
        "--out",
        default=None,
        help="Write the changelog to this file instead of stdout.",
    )
    changelog_parser.add_argument(
        "--package",
        default=DEFAULT_PACKAGE,
        help="Published package name to fetch previous manifests from.",
    )

    return parser


def parse_overrides(values: Sequence[str]) -> Dict[str, str]:
    """Turn ``id=value`` / ``value`` flags into an override map (``*`` = all)."""
    overrides: Dict[str, str] = {}
    for value in values:
        key, sep, rest = value.partition("=")
        if sep:
            overrides[key] = rest
        else:
            overrides["*"] = value
    return overrides


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for abigen commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(
        verbose=bool(args.verbose),
        log_file=Path(args.log_file) if args.log_file else None,
    )
    logger = get_logger("cli")

    if args.command == "generate":
        options = GenerateOptions(
            config_path=args.config,
            run_build=not args.no_build,
            repo_overrides=parse_overrides(args.repo),
            ref_overrides=parse_overrides(args.ref),
        )
        try:
            result = Generator().run(options)
        except (ConfigError, CollisionError) as exc:
            parser.exit(1, f"abigen generate failed: {exc}\n")
        except (RuntimeError, OSError) as exc:
            parser.exit(1, f"abigen generate failed: {exc}\nRun with --verbose for more details.\n")
        report_warnings(result.warnings, logger)
        print(
            f"Generated {result.module_count} modules from {result.artifact_count} artifacts"
        )
    elif args.command == "changelog":
        try:
            outcome = ChangelogRunner().run(
                args.manifest,
                tag=args.tag,
                against=args.against,
                package=args.package,
            )
        except FileNotFoundError as exc:
            parser.exit(1, f"{exc}\n")
        except ValueError as exc:
            parser.exit(1, f"abigen changelog failed: {exc}\n")
        if outcome.is_empty:
            print("No ABI changes detected.")
            return
        if args.out:
            Path(args.out).write_text(outcome.text, encoding="utf-8")
            print(f"Changelog written to {args.out}")
        else:
            sys.stdout.write(outcome.text)
    else:  # pragma: no cover - argparse enforces choices
        parser.exit(1, "Unknown command\n")


if __name__ == "__main__":
    main(sys.argv[1:])
