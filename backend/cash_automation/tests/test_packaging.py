from pathlib import Path

from setuptools import find_namespace_packages

ROOT = Path(__file__).resolve().parents[3]


def test_package_tree_is_discoverable():
    pyproject = (ROOT / "pyproject.toml").read_text()
    assert "namespaces = true" in pyproject

    packages = find_namespace_packages(where=str(ROOT / "backend"), include=["cash_automation*"])
    for name in ("cash_automation", "cash_automation.core", "cash_automation.models",
                 "cash_automation.routes", "cash_automation.services"):
        assert name in packages
