from __future__ import annotations

from pathlib import Path


_README_ANCHORS = (
    # One-line summary
    "Generate strongly-typed C# tag and layer types for Unity projects",
    # Prerequisites section
    "Prerequisites",
    "PyYAML",
    # Quick start and modes
    "--project",
    "--settings",
    "--auto",
    "--check",
    "--watch",
    # Discovery examples section
    "--list-tags",
    "--list-layers",
    # Settings file
    "TagLayerTypeGenerator.yaml",
    "assembly_definition",
    # Testing instructions
    "pytest",
    # License section
    "MIT",
)


def _tool_root() -> Path:
    return Path(__file__).resolve().parents[2]


def test_t_01_required_publication_artifacts_exist() -> None:
    tool_root = _tool_root()
    required_paths = {
        "typegen.py",
        "pyproject.toml",
        "README.md",
        "tests/conftest.py",
        "tests/test_cli.py",
        "tests/test_names.py",
        "tests/test_emitter.py",
        "tests/test_inspector.py",
        "tests/test_orchestrator.py",
        "tests/test_summary.py",
        "tests/external/test_external_cli.py",
        "tests/external/test_repo_shape.py",
    }

    missing = sorted(path for path in required_paths if not (tool_root / path).exists())
    assert missing == []


def test_t_02_no_generated_csharp_is_checked_in() -> None:
    tool_root = _tool_root()

    assert list(tool_root.glob("*.cs")) == []
    assert not (tool_root / "Assets").exists()
    assert not (tool_root / "ProjectSettings").exists()


def test_t_03_readme_includes_required_sections_and_quick_start() -> None:
    readme = _tool_root() / "README.md"
    assert readme.exists(), "README.md must exist"
    content = readme.read_text(encoding="utf-8")
    missing = [anchor for anchor in _README_ANCHORS if anchor not in content]
    assert missing == [], f"README.md missing required anchors: {missing}"
