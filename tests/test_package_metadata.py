from __future__ import annotations

import tomllib
from importlib import import_module
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]


def test_dunder_all_exports() -> None:
    module = import_module("backlogimport")
    expected = {"BulkImport", "ImportConfig", "ImportReport", "load_config", "run_import", "__version__"}
    assert expected <= set(module.__all__)
    for name in module.__all__:
        assert hasattr(module, name)


def test_version_matches_pyproject() -> None:
    module = import_module("backlogimport")
    data = tomllib.loads((ROOT / "pyproject.toml").read_text(encoding="utf-8"))
    assert data["project"]["version"] == module.__version__
    assert data["project"]["scripts"]["backlog-import"] == "backlogimport.cli:main"
