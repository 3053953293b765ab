#!/usr/bin/env python3
"""
Git helper utilities for the package update script
Stages the rewritten install script and nuspec, commits them with a
version-bearing message, and optionally pushes.
"""

import subprocess
from pathlib import Path
from typing import Iterable, List, Tuple

from document_io import load_document
from nuspec_version import read_nuspec_version

REPO_ROOT = Path(__file__).parent.parent


def run_git_command(args: List[str], cwd: Path = REPO_ROOT) -> Tuple[int, str, str]:
    """Run a git command and return (returncode, stdout, stderr)."""
    try:
        result = subprocess.run(
            args,
            capture_output=True,
            text=True,
            cwd=str(cwd),
            encoding="utf-8",
            errors="replace",
        )
        return result.returncode, result.stdout.strip(), result.stderr.strip()
    except Exception as e:
        return 1, "", str(e)


def get_nuspec_version_from_file(nuspec_path: Path) -> str:
    """Read <metadata><version> from a nuspec file, '' if unavailable."""
    try:
        return read_nuspec_version(load_document(nuspec_path).content)
    except (OSError, UnicodeDecodeError):
        return ""


def commit_package_changes(
    package_name: str,
    paths: Iterable[Path],
    nuspec_path: Path,
    push: bool = False,
    cwd: Path = REPO_ROOT,
) -> bool:
    """Stage and commit the given files if they have changes. Optionally push.

    Returns True if a commit was created, False otherwise.
    """
    existing = [str(p) for p in paths if Path(p).exists()]
    if not existing:
        print("⚠️  Auto-commit skipped: no changed files to stage")
        return False

    rc, out, err = run_git_command(["git", "add", "--", *existing], cwd=cwd)
    if rc != 0:
        print(f"⚠️  git add failed: {err or out}")
        return False

    rc, ns_out, ns_err = run_git_command(["git", "diff", "--cached", "--name-only", "--", *existing], cwd=cwd)
    if rc != 0:
        print(f"⚠️  git diff --cached failed: {ns_err or ns_out}")
        return False

    if not ns_out.strip():
        print(f"ℹ️  No staged changes for {package_name}, skipping commit.")
        return False

    version_str = get_nuspec_version_from_file(nuspec_path)
    msg = f"{package_name}: Update to version {version_str}" if version_str else f"{package_name}: Update checksums"

    rc, out, err = run_git_command(["git", "commit", "-m", msg, "--", *existing], cwd=cwd)
    if rc != 0:
        reason = err or out
        if "nothing to commit" in reason.lower():
            print("ℹ️  No changes staged to commit.")
        else:
            print(f"⚠️  git commit failed: {reason}")
        return False

    print(out or "✅ Commit created")

    if push:
        push_changes(cwd=cwd)

    return True


def push_changes(cwd: Path = REPO_ROOT) -> bool:
    """Push committed changes to the remote."""
    rc, out, err = run_git_command(["git", "push"], cwd=cwd)
    if rc != 0:
        print(f"⚠️  git push failed: {err or out}")
        return False
    print(out or "⬆️  Pushed changes to remote")
    return True
