"""Tests for the package layout declared in pyproject.toml."""

import re
import pytest
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent


class TestPackageDiscovery:
    """The installed distribution must contain the importable packages."""

    def test_namespace_discovery_enabled(self):
        text = (ROOT / "pyproject.toml").read_text()
        section = text.split("[tool.setuptools.packages.find]", 1)[1].split("\n[", 1)[0]
        assert re.search(r"^namespaces\s*=\s*true", section, re.MULTILINE)

    def test_src_packages_found(self):
        setuptools = pytest.importorskip("setuptools")

        packages = setuptools.find_namespace_packages(where=str(ROOT), include=["src", "src.*"])

        assert {"src", "src.intake", "src.intake.validators"} <= set(packages)
        assert not any(p.startswith("tests") for p in packages)
