#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
UniFi Identity Chocolatey Package Updater
Downloads the latest installers, writes their checksums into the install script
and the MSI ProductVersion into the nuspec. Both files are edited in place:
only the checksum values and the version text change.
"""

import argparse
import json
import logging
import os
import sys
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional

import requests

from artifact_fetcher import (
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_RETRY_DELAY,
    DEFAULT_TIMEOUT,
    download_with_retry,
    get_session,
)
from document_io import load_document, save_document
from hash_utils import DEFAULT_ALGORITHM, SUPPORTED_ALGORITHMS, compute_file_hash, normalize_algorithm
from msi_reader import get_msi_version
from nuspec_version import read_nuspec_version, update_nuspec_version
from script_fields import FieldAssignment, apply_field_assignments
from update_errors import ConfigurationError, UpdateError

# Configuration
PACKAGE_NAME = "unifiidentity"
SCRIPTS_DIR = Path(__file__).parent
REPO_ROOT = SCRIPTS_DIR.parent
NUSPEC_FILE = REPO_ROOT / f"{PACKAGE_NAME}.nuspec"
DEFAULT_DOWNLOAD_DIR = REPO_ROOT / "downloads"

# Logging configuration
LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO').upper()
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
LOG_DATE_FORMAT = '%H:%M:%S'


@dataclass(frozen=True)
class ArtifactVariant:
    """One installer download and the script field holding its checksum"""
    role: str
    field: str
    url: Optional[str] = None


@dataclass(frozen=True)
class DownloadedArtifact:
    variant: ArtifactVariant
    path: Path
    digest: str
    algorithm: str


@dataclass
class UpdateOptions:
    script_path: Path
    url: Optional[str] = None
    url64: Optional[str] = None
    algorithm: str = DEFAULT_ALGORITHM
    download_dir: Path = DEFAULT_DOWNLOAD_DIR
    nuspec_path: Path = NUSPEC_FILE
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    delay: float = DEFAULT_RETRY_DELAY
    timeout: int = DEFAULT_TIMEOUT


@dataclass
class UpdateResult:
    name: str = PACKAGE_NAME
    version: str = ""
    previous_version: str = ""
    checksums: Dict[str, str] = field(default_factory=dict)
    missing_fields: List[str] = field(default_factory=list)
    version_updated: bool = False
    changed_files: List[Path] = field(default_factory=list)

    @property
    def updated(self) -> bool:
        return bool(self.changed_files)

    def to_summary(self) -> Dict[str, object]:
        """Structured output line for callers parsing script output"""
        summary: Dict[str, object] = {"updated": self.updated, "name": self.name}
        if self.version:
            summary["version"] = self.version
        if self.checksums:
            summary["checksums"] = self.checksums
        if self.missing_fields:
            summary["missing_fields"] = self.missing_fields
        return summary


def build_variants(url: Optional[str], url64: Optional[str]) -> List[ArtifactVariant]:
    return [
        ArtifactVariant(role="32bit", field="checksum", url=url or None),
        ArtifactVariant(role="64bit", field="checksum64", url=url64 or None),
    ]


def validate_options(options: UpdateOptions) -> str:
    """Check the run configuration before anything is downloaded. Returns the algorithm tag."""
    if not options.url and not options.url64:
        raise ConfigurationError("At least one of --url or --url64 must be provided")
    if not Path(options.script_path).is_file():
        raise ConfigurationError(f"Install script not found: {options.script_path}")
    return normalize_algorithm(options.algorithm)


def fetch_artifacts(
    variants: List[ArtifactVariant],
    options: UpdateOptions,
    algorithm: str,
    *,
    session: Optional[requests.Session] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> List[DownloadedArtifact]:
    """Download and hash every variant that has a URL, in order"""
    artifacts: List[DownloadedArtifact] = []
    for variant in variants:
        if not variant.url:
            logging.info(f"No URL for {variant.role} installer; skipping {variant.field}")
            continue
        print(f"⬇️  Downloading {variant.role} installer...")
        path = download_with_retry(
            variant.url,
            options.download_dir,
            variant.role,
            max_attempts=options.max_attempts,
            delay=options.delay,
            timeout=options.timeout,
            session=session,
            sleep=sleep,
        )
        digest = compute_file_hash(path, algorithm)
        print(f"✅ {variant.role} {algorithm}: {digest}")
        artifacts.append(DownloadedArtifact(variant=variant, path=path, digest=digest, algorithm=algorithm))
    return artifacts


def select_version_source(artifacts: List[DownloadedArtifact]) -> Optional[DownloadedArtifact]:
    """Prefer the 64-bit installer, otherwise whichever one was fetched"""
    for artifact in artifacts:
        if artifact.variant.role == "64bit":
            return artifact
    return artifacts[0] if artifacts else None


def rewrite_checksums(script_path: Path, artifacts: List[DownloadedArtifact], result: UpdateResult) -> None:
    document = load_document(script_path)
    assignments = [FieldAssignment(a.variant.field, a.digest) for a in artifacts]
    document.content, missing = apply_field_assignments(document.content, assignments)

    for name in missing:
        print(f"⚠️  Field '{name}' not found in {script_path.name}; left unchanged")
    result.missing_fields.extend(missing)
    result.checksums.update({a.name: a.value for a in assignments if a.name not in missing})

    if save_document(document):
        result.changed_files.append(document.path)
        print(f"✅ Updated checksums in {script_path.name}")
    else:
        print(f"ℹ️  {script_path.name} already up to date")


def rewrite_version(
    nuspec_path: Path,
    artifacts: List[DownloadedArtifact],
    result: UpdateResult,
    version_reader: Callable[[Path], str],
) -> None:
    source = select_version_source(artifacts)
    if not nuspec_path.is_file() or source is None:
        print(f"ℹ️  Skipping version update (nuspec not found or no installer downloaded): {nuspec_path}")
        return

    print(f"🔍 Reading ProductVersion from {source.variant.role} installer...")
    version = version_reader(source.path)
    result.version = version

    document = load_document(nuspec_path)
    result.previous_version = read_nuspec_version(document.content)
    updated = update_nuspec_version(document.content, version)
    if updated is None:
        print(f"⚠️  No version element found in {nuspec_path.name}; left unchanged")
        return

    document.content = updated
    result.version_updated = True
    if save_document(document):
        result.changed_files.append(document.path)
        print(f"✅ Updated {PACKAGE_NAME}: {result.previous_version or '?'} → {version}")
    else:
        print(f"✅ {PACKAGE_NAME} is already at version {version}")


def update_package(
    options: UpdateOptions,
    *,
    session: Optional[requests.Session] = None,
    version_reader: Callable[[Path], str] = get_msi_version,
    sleep: Callable[[float], None] = time.sleep,
) -> UpdateResult:
    """
    Run one full update: fetch, hash, rewrite checksums, read version, rewrite nuspec

    Raises:
        UpdateError: on a fatal condition (bad configuration, download exhausted,
            version unreadable)
    """
    print(f"🔄 Updating {PACKAGE_NAME}...")
    algorithm = validate_options(options)
    script_path = Path(options.script_path)
    result = UpdateResult()

    artifacts = fetch_artifacts(build_variants(options.url, options.url64), options, algorithm,
                                session=session or get_session(), sleep=sleep)
    rewrite_checksums(script_path, artifacts, result)
    rewrite_version(Path(options.nuspec_path), artifacts, result, version_reader)
    return result


def setup_logging(verbose: bool = False, quiet: bool = False) -> None:
    """Configure logging based on verbosity settings."""
    if quiet:
        level = logging.WARNING
    elif verbose:
        level = logging.DEBUG
    else:
        level = logging.INFO

    # Override with environment variable if set
    if LOG_LEVEL != 'INFO':
        level = getattr(logging, LOG_LEVEL, logging.INFO)

    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT
    )


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description=f"Update the {PACKAGE_NAME} Chocolatey package from the latest installers",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python scripts/update_package.py --script-path tools/chocolateyinstall.ps1 --url64 https://host/app-x64.msi
  python scripts/update_package.py --script-path tools/chocolateyinstall.ps1 --url https://host/app.msi --url64 https://host/app-x64.msi
  python scripts/update_package.py --script-path tools/chocolateyinstall.ps1 --url64 https://host/app-x64.msi --algorithm SHA512 --auto-commit
        """
    )

    parser.add_argument("--script-path", required=True, type=Path,
                        help="Install script containing checksum/checksum64 assignments")

    sources_group = parser.add_argument_group('Installers')
    sources_group.add_argument("--url", help="32-bit installer URL")
    sources_group.add_argument("--url64", help="64-bit installer URL (used for the version when given)")
    sources_group.add_argument("--algorithm", type=str.upper, choices=list(SUPPORTED_ALGORITHMS),
                               default=DEFAULT_ALGORITHM,
                               help=f"Checksum algorithm (default: {DEFAULT_ALGORITHM})")
    sources_group.add_argument("--download-dir", type=Path, default=DEFAULT_DOWNLOAD_DIR,
                               help=f"Where installers are saved (default: {DEFAULT_DOWNLOAD_DIR})")

    download_group = parser.add_argument_group('Download')
    download_group.add_argument("--max-attempts", type=int, default=DEFAULT_MAX_ATTEMPTS,
                                help=f"Download attempts per installer (default: {DEFAULT_MAX_ATTEMPTS})")
    download_group.add_argument("--delay", type=float, default=DEFAULT_RETRY_DELAY,
                                help=f"Seconds between download attempts (default: {DEFAULT_RETRY_DELAY})")
    download_group.add_argument("--timeout", type=int, default=DEFAULT_TIMEOUT,
                                help=f"Per-request timeout in seconds (default: {DEFAULT_TIMEOUT})")

    git_group = parser.add_argument_group('Git')
    git_group.add_argument("--auto-commit", action="store_true",
                           help="Commit the changed files after a successful update")
    git_group.add_argument("--push", action="store_true",
                           help="Push after auto-committing")

    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Enable verbose logging")
    parser.add_argument("--quiet", "-q", action="store_true",
                        help="Reduce logging output")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    setup_logging(args.verbose, args.quiet)

    options = UpdateOptions(
        script_path=args.script_path,
        url=args.url,
        url64=args.url64,
        algorithm=args.algorithm,
        download_dir=args.download_dir,
        max_attempts=args.max_attempts,
        delay=args.delay,
        timeout=args.timeout,
    )

    try:
        result = update_package(options)
    except UpdateError as e:
        print(f"❌ {e}")
        print(json.dumps({"updated": False, "name": PACKAGE_NAME, "error": e.code}))
        return 1
    except (OSError, UnicodeDecodeError) as e:
        print(f"❌ File error: {e}")
        print(json.dumps({"updated": False, "name": PACKAGE_NAME, "error": "io_error"}))
        return 1

    print(json.dumps(result.to_summary()))

    auto_commit = args.auto_commit or os.environ.get("AUTO_COMMIT") == "1"
    if auto_commit and result.updated:
        from git_helpers import commit_package_changes
        commit_package_changes(PACKAGE_NAME, result.changed_files, Path(options.nuspec_path), push=args.push)

    return 0


if __name__ == "__main__":
    sys.exit(main())
