"""Tests for package discovery."""

import tomllib
from pathlib import Path

from setuptools import find_namespace_packages

ROOT = Path(__file__).parent.parent


def test_cli_packages_are_installed():
    """Package discovery picks up the CLI directories behind the entry point."""
    config = tomllib.loads((ROOT / "pyproject.toml").read_text())
    find = config["tool"]["setuptools"]["packages"]["find"]
    assert find["namespaces"] is True

    packages = find_namespace_packages(where=str(ROOT / find["where"][0]))
    assert "ledgerlink.cli" in packages
    assert "ledgerlink.cli.commands" in packages
    assert config["project"]["scripts"]["ledgerlink"] == "ledgerlink.cli.main:main"
