import importlib.util
import re
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]


def _load_package_info():
    spec = importlib.util.spec_from_file_location("image_delivery_package", ROOT / "src" / "__init__.py")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def test_version_matches_project_metadata() -> None:
    pyproject = (ROOT / "pyproject.toml").read_text(encoding="utf-8")
    declared = re.search(r'^version = "([^"]+)"', pyproject, re.MULTILINE).group(1)

    assert _load_package_info().__version__ == declared


def test_exports_both_packages() -> None:
    assert _load_package_info().__all__ == ["handlers", "core"]
