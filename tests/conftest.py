"""
Shared test fixtures and configuration.
"""

import textwrap
from pathlib import Path

import pytest

from pipconverge.adapters.mock import MockRunner
from pipconverge.core.models.package import DesiredPackage


@pytest.fixture
def runner() -> MockRunner:
    """A MockRunner with no responses registered."""
    return MockRunner()


@pytest.fixture
def package() -> DesiredPackage:
    """A plain unpinned package."""
    return DesiredPackage(name="requests")


@pytest.fixture
def declarations_yml(tmp_path: Path) -> Path:
    """A packages.yml with one declaration per action."""
    content = textwrap.dedent("""\
        settings:
          index_url: https://mirror.example/simple
          audit_log: .state/audit.ndjson
        packages:
          - name: requests
            version: "2.31.0"
          - name: Flask_Login
            action: upgrade
          - name: left-pad
            action: remove
    """)
    path = tmp_path / "packages.yml"
    path.write_text(content)
    return path
