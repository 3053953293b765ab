"""
Pytest configuration and shared fixtures for the package updater tests.

This module provides common fixtures that can be used across all test files.
"""
import subprocess
import sys
from pathlib import Path

import pytest
import requests


# Add scripts directory to path for imports
SCRIPTS_DIR = Path(__file__).parent.parent / "scripts"
sys.path.insert(0, str(SCRIPTS_DIR))


# ============================================================================
# Path Fixtures
# ============================================================================

@pytest.fixture
def repo_root():
    """Provide the repository root path."""
    return Path(__file__).parent.parent


@pytest.fixture
def download_dir(tmp_path):
    """Directory that receives downloaded installers."""
    return tmp_path / "downloads"


# ============================================================================
# Package File Fixtures
# ============================================================================

INSTALL_SCRIPT = """\
$ErrorActionPreference = 'Stop'
$toolsDir   = "$(Split-Path -parent $MyInvocation.MyCommand.Definition)"

$packageArgs = @{
  packageName   = $env:ChocolateyPackageName
  fileType      = 'msi'
  url           = 'https://dl.ui.com/unifi-identity/UniFi-Identity-x86.msi'
  url64bit      = 'https://dl.ui.com/unifi-identity/UniFi-Identity-x64.msi'

  softwareName  = 'UniFi Identity*'

  checksum      = '1604E27C0000000000000000000000000000000000000000000000000000AAAA'
  checksumType  = 'sha256'
  checksum64    = "7F3C11D40000000000000000000000000000000000000000000000000000BBBB"  # x64 build
  checksumType64= 'sha256'

  silentArgs    = "/qn /norestart /l*v `"$($env:TEMP)\\$($packageName).$($env:chocolateyPackageVersion).MsiInstall.log`""
  validExitCodes= @(0, 3010, 1641)
}

Install-ChocolateyPackage @packageArgs
"""

NUSPEC = """\
<?xml version="1.0" encoding="utf-8"?>
<!-- Do not remove this test for UTF-8: if “Ω” doesn’t appear as greek uppercase omega letter enclosed in quotation marks, you should use an editor that supports UTF-8, not this one. -->
<package xmlns="http://schemas.microsoft.com/packaging/2015/06/nuspec.xsd">
  <metadata>
    <id>unifiidentity</id>
    <version>1.0.0</version>
    <title>UniFi Identity</title>
    <authors>Ubiquiti Inc.</authors>
    <tags>unifi identity vpn</tags>
    <dependencies>
      <dependency id="chocolatey-core.extension" version="1.1.0" />
    </dependencies>
  </metadata>
  <files>
    <file src="tools\\**" target="tools" />
  </files>
</package>
"""


@pytest.fixture
def install_script_text():
    """Chocolatey install script with checksum and checksum64 assignments."""
    return INSTALL_SCRIPT


@pytest.fixture
def nuspec_text():
    """Namespaced nuspec with metadata/version 1.0.0."""
    return NUSPEC


@pytest.fixture
def package_files(tmp_path):
    """Write an install script and nuspec into a temporary package layout."""
    tools_dir = tmp_path / "tools"
    tools_dir.mkdir()
    script_path = tools_dir / "chocolateyinstall.ps1"
    nuspec_path = tmp_path / "unifiidentity.nuspec"
    with open(script_path, "w", encoding="utf-8", newline="") as f:
        f.write(INSTALL_SCRIPT)
    with open(nuspec_path, "w", encoding="utf-8", newline="") as f:
        f.write(NUSPEC)
    return script_path, nuspec_path


# ============================================================================
# HTTP Fakes
# ============================================================================

class FakeResponse:
    """Streaming response stand-in usable as a context manager."""

    def __init__(self, body=b"", status_code=200):
        self.body = body
        self.status_code = status_code

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"HTTP {self.status_code}")

    def iter_content(self, chunk_size=8192):
        for i in range(0, len(self.body), chunk_size):
            yield self.body[i:i + chunk_size]


class FakeSession:
    """Session whose get() replays scripted outcomes per URL.

    An outcome is bytes (served with 200), an int status code, or an exception
    instance to raise.
    """

    def __init__(self, outcomes):
        self.outcomes = {url: list(items) for url, items in outcomes.items()}
        self.calls = []

    def get(self, url, stream=False, timeout=None, **kwargs):
        self.calls.append(url)
        outcome = self.outcomes[url].pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        if isinstance(outcome, int):
            return FakeResponse(status_code=outcome)
        return FakeResponse(outcome)


@pytest.fixture
def fake_session():
    """Factory for FakeSession objects."""
    return FakeSession


# ============================================================================
# Git Fixtures
# ============================================================================

@pytest.fixture
def temp_git_repo(tmp_path):
    """Create a temporary git repository with one commit."""
    repo_dir = tmp_path / "test_repo"
    repo_dir.mkdir()

    def git(*args):
        subprocess.run(["git", *args], cwd=repo_dir, capture_output=True, check=True)

    git("init")
    git("config", "user.email", "test@test.com")
    git("config", "user.name", "Test User")
    git("config", "commit.gpgsign", "false")

    (repo_dir / "README.md").write_text("# Test Repository")
    git("add", "README.md")
    git("commit", "-m", "Initial commit")
    return repo_dir


# ============================================================================
# Skip Markers
# ============================================================================

def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "git: marks tests that need a git executable"
    )
