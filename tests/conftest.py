import sys
from collections.abc import Callable
from pathlib import Path

import pytest

GENERATOR_DIR = Path(__file__).resolve().parent.parent
if str(GENERATOR_DIR) not in sys.path:
    sys.path.insert(0, str(GENERATOR_DIR))

import typegen  # noqa: E402

DEFAULT_LAYERS = ["Default", "TransparentFX", "Ignore Raycast", "", "Water", "UI"]


def tag_manager_text(tags: list[str], layers: list[str]) -> str:
    lines = [
        "%YAML 1.1",
        "%TAG !u! tag:unity3d.com,2011:",
        "--- !u!78 &1",
        "TagManager:",
        "  serializedVersion: 2",
    ]
    if tags:
        lines.append("  tags:")
        lines.extend(f"  - {tag}" for tag in tags)
    else:
        lines.append("  tags: []")
    lines.append("  layers:")
    lines.extend(f"  - {name}" if name else "  - " for name in layers)
    lines.extend(
        [
            "  m_SortingLayers:",
            "  - name: Default",
            "    uniqueID: 0",
            "    locked: 0",
        ]
    )
    return "\n".join(lines) + "\n"


@pytest.fixture
def write_tag_manager() -> Callable[..., Path]:
    def _write_tag_manager(
        project_root: Path,
        tags: list[str] | None = None,
        layers: list[str] | None = None,
    ) -> Path:
        asset = project_root / "ProjectSettings" / "TagManager.asset"
        asset.parent.mkdir(parents=True, exist_ok=True)
        asset.write_text(
            tag_manager_text(
                tags if tags is not None else [],
                layers if layers is not None else DEFAULT_LAYERS,
            ),
            encoding="utf-8",
        )
        return asset

    return _write_tag_manager


@pytest.fixture
def unity_project(tmp_path: Path, write_tag_manager: Callable[..., Path]) -> Path:
    project_root = tmp_path / "Game"
    (project_root / "Assets").mkdir(parents=True)
    write_tag_manager(project_root, tags=["Collectable"])
    return project_root


@pytest.fixture
def write_settings() -> Callable[[Path, str], Path]:
    def _write_settings(project_root: Path, text: str) -> Path:
        path = project_root / typegen.DEFAULT_SETTINGS_PATH
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        return path

    return _write_settings


@pytest.fixture
def write_asmdef() -> Callable[[Path, str], Path]:
    def _write_asmdef(folder: Path, name: str) -> Path:
        folder.mkdir(parents=True, exist_ok=True)
        path = folder / f"{name}.asmdef"
        path.write_text(f'{{\n    "name": "{name}"\n}}\n', encoding="utf-8")
        return path

    return _write_asmdef


@pytest.fixture
def make_target() -> Callable[..., typegen.GenerationTarget]:
    def _make_target(
        *,
        auto_generate: bool = True,
        type_name: str = "Tag",
        file_path: str = "Assets/Scripts/Generated/Tag.cs",
        namespace: str = "",
        assembly_definition: str = "",
    ) -> typegen.GenerationTarget:
        return typegen.GenerationTarget(
            auto_generate=auto_generate,
            type_name=type_name,
            file_path=file_path,
            namespace=namespace,
            assembly_definition=assembly_definition,
        )

    return _make_target
