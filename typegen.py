"""Tag and layer type generator for Unity projects.

Reads a Unity project's tag and layer names and regenerates C# source files
exposing them as compile-time constants and enums. Change detection recovers
the names encoded in the previously generated types, so automatic runs only
rewrite a file when the project's names actually changed.

Usage:
    python typegen.py --project path/to/UnityProject
    python typegen.py --project path/to/UnityProject --auto
    python typegen.py --project path/to/UnityProject --watch --interval 2
"""

import argparse
import json
import re
import time
from collections.abc import Callable, Iterable, Iterator, Mapping
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import NamedTuple

import yaml

GENERATOR_NAME = "tag-layer-typegen"
TAG_MANAGER_ASSET = Path("ProjectSettings") / "TagManager.asset"
DEFAULT_SETTINGS_PATH = Path("ProjectSettings") / "TagLayerTypeGenerator.yaml"
DEFAULT_WATCH_INTERVAL = 1.0


# ===--- Errors ---=== #


VALID_CONFIG_ERROR_CODES = {
    "INVALID_SETTINGS",
    "CONFLICT_MODES",
    "PATH_NOT_FOUND",
    "INVALID_INTERVAL",
}

VALID_GENERATION_ERROR_CODES = {
    "NOT_CONFIGURED",
    "AMBIGUOUS_TYPE",
    "WRITE_ERROR",
    "HOST_UNAVAILABLE",
    "INVALID_NAME",
}


class ConfigError(Exception):
    def __init__(self, code: str, message: str, suggestion: str | None = None):
        if code not in VALID_CONFIG_ERROR_CODES:
            raise ValueError(f"Unknown config error code: {code}")
        super().__init__(message)
        self.code = code
        self.message = message
        self.suggestion = suggestion


class GenerationError(Exception):
    def __init__(self, code: str, message: str, suggestion: str | None = None):
        if code not in VALID_GENERATION_ERROR_CODES:
            raise ValueError(f"Unknown generation error code: {code}")
        super().__init__(message)
        self.code = code
        self.message = message
        self.suggestion = suggestion


# ===--- Constants ---=== #

KIND_TAG = "tag"
KIND_LAYER = "layer"
TARGET_KINDS: tuple[str, ...] = (KIND_TAG, KIND_LAYER)

LAYER_COUNT = 32
MASKS_SUFFIX = "Masks"

BUILTIN_TAGS: tuple[str, ...] = (
    "Untagged",
    "Respawn",
    "Finish",
    "EditorOnly",
    "MainCamera",
    "Player",
    "GameController",
)
"""Tags every Unity project has. TagManager.asset only stores custom tags."""

SEARCH_ROOTS: tuple[str, ...] = ("Assets", "Packages")

FIRSTPASS_FOLDERS = {"Plugins", "Standard Assets", "Pro Standard Assets"}

CSHARP_KEYWORDS = frozenset(
    {
        "abstract", "as", "base", "bool", "break", "byte", "case", "catch",
        "char", "checked", "class", "const", "continue", "decimal", "default",
        "delegate", "do", "double", "else", "enum", "event", "explicit",
        "extern", "false", "finally", "fixed", "float", "for", "foreach",
        "goto", "if", "implicit", "in", "int", "interface", "internal", "is",
        "lock", "long", "namespace", "new", "null", "object", "operator",
        "out", "override", "params", "private", "protected", "public",
        "readonly", "ref", "return", "sbyte", "sealed", "short", "sizeof",
        "stackalloc", "static", "string", "struct", "switch", "this", "throw",
        "true", "try", "typeof", "uint", "ulong", "unchecked", "unsafe",
        "ushort", "using", "virtual", "void", "volatile", "while",
    }
)


# ===--- Data classes ---=== #


class LayerEntry(NamedTuple):
    index: int
    name: str


@dataclass(frozen=True)
class GenerationTarget:
    """Settings for one generated file (tags or layers).

    Attributes:
        auto_generate: Regenerate automatically when the project changes.
        type_name: Name of the generated class or enum.
        file_path: Output path, relative to the project root unless absolute.
        namespace: Optional namespace wrapping the generated type.
        assembly_definition: Optional assembly the previously generated type
            is looked up in. Empty searches every assembly.
    """

    auto_generate: bool = True
    type_name: str = ""
    file_path: str = ""
    namespace: str = ""
    assembly_definition: str = ""


@dataclass(frozen=True)
class GeneratorSettings:
    tag: GenerationTarget
    layer: GenerationTarget

    def target(self, kind: str) -> GenerationTarget:
        if kind == KIND_TAG:
            return self.tag
        if kind == KIND_LAYER:
            return self.layer
        raise ValueError(f"Unknown target kind: {kind}")


DEFAULT_TAG_TARGET = GenerationTarget(
    type_name="Tag", file_path="Assets/Scripts/Generated/Tag.cs"
)
DEFAULT_LAYER_TARGET = GenerationTarget(
    type_name="Layer", file_path="Assets/Scripts/Generated/Layer.cs"
)
DEFAULT_SETTINGS = GeneratorSettings(tag=DEFAULT_TAG_TARGET, layer=DEFAULT_LAYER_TARGET)


@dataclass(frozen=True)
class GeneratedTypeSnapshot:
    """Names and values recovered from a previously generated type.

    A snapshot with no entries means the type exists but is empty. A missing
    type is represented by None, never by an empty snapshot.

    Attributes:
        kind: KIND_TAG or KIND_LAYER.
        type_name: Name of the class or enum that was found.
        entries: (identifier, value) pairs in file order. Values are the tag
            strings for tags and layer indices for layers.
        path: Source file the type was found in.
        assembly: Assembly the source file compiles into.
        namespace: Namespace the type was declared in, empty for none.
    """

    kind: str
    type_name: str
    entries: tuple[tuple[str, str | int], ...]
    path: Path
    assembly: str
    namespace: str = ""

    def entry_set(self) -> frozenset[tuple[str, str | int]]:
        return frozenset(self.entries)


# ===--- Settings store ---=== #

_TARGET_FIELDS: dict[str, type] = {
    "auto_generate": bool,
    "type_name": str,
    "file_path": str,
    "namespace": str,
    "assembly_definition": str,
}


def _parse_target(
    raw: object, section: str, default: GenerationTarget, path: Path
) -> GenerationTarget:
    if raw is None:
        return default
    if not isinstance(raw, dict):
        raise ConfigError(
            "INVALID_SETTINGS",
            f"Section '{section}' in {path} must be a mapping.",
            f"Write '{section}:' followed by indented keys.",
        )

    unknown = sorted(str(key) for key in raw if key not in _TARGET_FIELDS)
    if unknown:
        raise ConfigError(
            "INVALID_SETTINGS",
            f"Unknown keys in section '{section}' of {path}: {', '.join(unknown)}",
            f"Valid keys: {', '.join(_TARGET_FIELDS)}.",
        )

    values: dict[str, object] = {}
    for key, expected in _TARGET_FIELDS.items():
        if key not in raw:
            continue
        value = raw[key]
        if value is None and expected is str:
            value = ""
        if not isinstance(value, expected):
            raise ConfigError(
                "INVALID_SETTINGS",
                f"{section}.{key} in {path} must be a {expected.__name__}, "
                f"got {type(value).__name__}.",
            )
        values[key] = value.strip() if isinstance(value, str) else value
    return replace(default, **values)


def load_settings(path: Path) -> GeneratorSettings:
    """Load both generation targets from a YAML settings file.

    A missing or empty file yields DEFAULT_SETTINGS. Keys left out of a
    section keep their default values.

    Raises:
        ConfigError: INVALID_SETTINGS when the file cannot be read or parsed,
            or contains unknown sections, unknown keys, or mistyped values.
    """
    path = Path(path)
    if not path.exists():
        return DEFAULT_SETTINGS

    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError) as err:
        raise ConfigError(
            "INVALID_SETTINGS", f"Cannot read settings file {path}: {err}"
        ) from err
    except yaml.YAMLError as err:
        raise ConfigError(
            "INVALID_SETTINGS",
            f"Cannot parse settings file {path}: {err}",
            "Fix the YAML syntax or delete the file to fall back to defaults.",
        ) from err

    if raw is None:
        return DEFAULT_SETTINGS
    if not isinstance(raw, dict):
        raise ConfigError(
            "INVALID_SETTINGS",
            f"Settings file {path} must contain a mapping with 'tag' and 'layer'.",
        )

    unknown = sorted(str(key) for key in raw if key not in TARGET_KINDS)
    if unknown:
        raise ConfigError(
            "INVALID_SETTINGS",
            f"Unknown sections in {path}: {', '.join(unknown)}",
            "Only 'tag' and 'layer' sections are supported.",
        )

    return GeneratorSettings(
        tag=_parse_target(raw.get(KIND_TAG), KIND_TAG, DEFAULT_TAG_TARGET, path),
        layer=_parse_target(
            raw.get(KIND_LAYER), KIND_LAYER, DEFAULT_LAYER_TARGET, path
        ),
    )


# ===--- Name sources ---=== #


class _UnityAssetLoader(yaml.BaseLoader):
    """Loader for Unity's serialized assets.

    BaseLoader keeps every scalar a string, so a layer named "On" or "12"
    is not turned into a bool or int. Unity's !u! class tags construct plain
    mappings.
    """


def _construct_unity_object(loader, _tag_suffix, node):
    return loader.construct_mapping(node, deep=True)


_UnityAssetLoader.add_multi_constructor("tag:unity3d.com,2011:", _construct_unity_object)


def load_tag_manager(path: Path) -> dict:
    """Return the TagManager mapping from a Unity TagManager.asset file.

    Raises:
        GenerationError: HOST_UNAVAILABLE when the asset is missing,
            unreadable, not valid YAML, or has no TagManager object.
    """
    hint = "Open the project in Unity once so ProjectSettings/TagManager.asset exists."
    try:
        text = Path(path).read_text(encoding="utf-8-sig")
    except (OSError, UnicodeDecodeError) as err:
        raise GenerationError(
            "HOST_UNAVAILABLE", f"Cannot read {path}: {err}", hint
        ) from err

    try:
        document = yaml.load(text, Loader=_UnityAssetLoader)
    except yaml.YAMLError as err:
        raise GenerationError(
            "HOST_UNAVAILABLE", f"Cannot parse {path}: {err}", hint
        ) from err

    manager = document.get("TagManager") if isinstance(document, dict) else None
    if not isinstance(manager, dict):
        raise GenerationError(
            "HOST_UNAVAILABLE", f"{path} does not contain a TagManager object.", hint
        )
    return manager


def _string_list(raw: object, key: str, path: Path) -> list[str]:
    if raw is None or raw == "":
        return []
    if not isinstance(raw, list):
        raise GenerationError(
            "HOST_UNAVAILABLE", f"TagManager.{key} in {path} is not a list."
        )
    return [item if isinstance(item, str) else "" for item in raw]


def merge_tags(builtin: Iterable[str], custom: Iterable[str]) -> tuple[str, ...]:
    merged: list[str] = []
    for name in (*builtin, *custom):
        if name and name not in merged:
            merged.append(name)
    return tuple(merged)


def layer_slots(names: Iterable[str]) -> tuple[LayerEntry, ...]:
    """Return exactly LAYER_COUNT slots, padding with unnamed ones."""
    padded = list(names)[:LAYER_COUNT]
    padded.extend([""] * (LAYER_COUNT - len(padded)))
    return tuple(LayerEntry(index, name) for index, name in enumerate(padded))


class TagManagerNameSource:
    """Reads tags and layers from a project's ProjectSettings/TagManager.asset.

    The asset is re-read on every call; nothing is cached between cycles.
    """

    def __init__(self, project_root: Path):
        self.project_root = Path(project_root)

    @property
    def asset_path(self) -> Path:
        return self.project_root / TAG_MANAGER_ASSET

    def current_tags(self) -> tuple[str, ...]:
        manager = load_tag_manager(self.asset_path)
        custom = _string_list(manager.get("tags"), "tags", self.asset_path)
        return merge_tags(BUILTIN_TAGS, custom)

    def current_layers(self) -> tuple[LayerEntry, ...]:
        manager = load_tag_manager(self.asset_path)
        return layer_slots(_string_list(manager.get("layers"), "layers", self.asset_path))


@dataclass(frozen=True)
class StaticNameSource:
    """In-memory name source for embedding the generator in other tools.

    Attributes:
        tags: Tag names in host order.
        layers: Layer index -> name. Missing indices are unnamed slots.
    """

    tags: tuple[str, ...] = ()
    layers: Mapping[int, str] = field(default_factory=dict)

    def current_tags(self) -> tuple[str, ...]:
        return tuple(self.tags)

    def current_layers(self) -> tuple[LayerEntry, ...]:
        names = [""] * LAYER_COUNT
        for index, name in self.layers.items():
            if not 0 <= index < LAYER_COUNT:
                raise ValueError(f"Layer index out of range 0-31: {index}")
            names[index] = name
        return layer_slots(names)


# ===--- Identifier sanitization ---=== #

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_NON_IDENTIFIER_RE = re.compile(r"[^A-Za-z0-9_]+")


def is_identifier(name: str) -> bool:
    return bool(_IDENTIFIER_RE.match(name)) and name not in CSHARP_KEYWORDS


def to_identifier(name: str) -> str:
    """Turn a tag or layer name into a C# identifier.

    Runs of characters outside [A-Za-z0-9_] split the name into fragments.
    The first fragment is kept as is and later fragments get an upper-case
    first character ("Ignore Raycast" -> "IgnoreRaycast"). A leading digit
    gets a "_" prefix and C# keywords get the "@" verbatim prefix.

    Raises:
        GenerationError: INVALID_NAME when no identifier character remains.
    """
    fragments = [fragment for fragment in _NON_IDENTIFIER_RE.split(name) if fragment]
    if not fragments:
        raise GenerationError(
            "INVALID_NAME",
            f"Name {name!r} has no characters usable in a C# identifier.",
            "Rename it in Project Settings > Tags and Layers.",
        )

    identifier = fragments[0] + "".join(
        fragment[0].upper() + fragment[1:] for fragment in fragments[1:]
    )
    if identifier[0].isdigit():
        identifier = "_" + identifier
    if identifier in CSHARP_KEYWORDS:
        identifier = "@" + identifier
    return identifier


def assign_identifiers(
    names: Iterable[str], reserved: Iterable[str] = ()
) -> tuple[str, ...]:
    """Sanitize names in order, suffixing _1, _2, ... on collisions.

    reserved holds identifiers that are already taken, such as the name of
    the enclosing type.
    """
    taken = set(reserved)
    identifiers: list[str] = []
    for name in names:
        base = to_identifier(name)
        candidate = base
        suffix = 1
        while candidate in taken:
            candidate = f"{base}_{suffix}"
            suffix += 1
        taken.add(candidate)
        identifiers.append(candidate)
    return tuple(identifiers)


def tag_entries(type_name: str, tags: Iterable[str]) -> tuple[tuple[str, str], ...]:
    tags = tuple(tags)
    identifiers = assign_identifiers(tags, reserved={type_name})
    return tuple(zip(identifiers, tags))


def layer_entries(
    type_name: str, layers: Iterable[LayerEntry]
) -> tuple[tuple[str, int], ...]:
    """Return (identifier, index) pairs for named layers, by ascending index.

    Raises:
        ValueError: If a layer index is outside 0-31.
    """
    named = sorted((entry for entry in layers if entry.name), key=lambda e: e.index)
    for entry in named:
        if not 0 <= entry.index < LAYER_COUNT:
            raise ValueError(f"Layer index out of range 0-31: {entry.index}")
    identifiers = assign_identifiers(
        (entry.name for entry in named),
        reserved={type_name, type_name + MASKS_SUFFIX},
    )
    return tuple((identifier, entry.index) for identifier, entry in zip(identifiers, named))


# ===--- Change detection ---=== #


def needs_regeneration(
    current: Iterable[tuple[str, str | int]],
    existing: GeneratedTypeSnapshot | None,
) -> bool:
    """Decide whether the generated type is out of date.

    With no previously generated type, regeneration is needed whenever there
    is anything to emit. Otherwise the (name, value) pairs are compared as
    sets: order is ignored, while added names, removed names and changed
    values all count.
    """
    current_set = frozenset(current)
    if existing is None:
        return bool(current_set)
    return current_set != existing.entry_set()


def resolve_target_path(project_root: Path, file_path: str) -> Path:
    path = Path(file_path.strip())
    if path.is_absolute():
        return path
    return Path(project_root) / path


def can_generate(target: GenerationTarget, project_root: Path | None = None) -> bool:
    """Return True when the target is configured well enough to be written.

    Checks the settings only; it says nothing about whether the file is
    out of date. With a project_root, a file_path naming an existing
    directory is also rejected.
    """
    if not is_identifier(target.type_name):
        return False
    if target.namespace and not all(
        is_identifier(part) for part in target.namespace.split(".")
    ):
        return False

    file_path = target.file_path.strip()
    if not file_path or not file_path.endswith(".cs"):
        return False
    if project_root is not None and resolve_target_path(project_root, file_path).is_dir():
        return False
    return True


# ===--- Source emission ---=== #

INDENT = "    "

_HEADER_LINES: tuple[str, ...] = (
    "// <auto-generated>",
    f"//     This code was generated by {GENERATOR_NAME}.",
    "//     Changes to this file may cause incorrect behavior and will be lost if",
    "//     the code is regenerated.",
    "// </auto-generated>",
)
GENERATED_MARKER = _HEADER_LINES[1]

_LITERAL_ESCAPES = {
    "\\": "\\\\",
    '"': '\\"',
    "\0": "\\0",
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
}

# C# ends a line at these too, so they can never appear raw inside a literal.
_LINE_TERMINATORS = frozenset({"\x85", "\u2028", "\u2029"})


def csharp_string_literal(value: str) -> str:
    chars: list[str] = []
    for ch in value:
        if ch in _LITERAL_ESCAPES:
            chars.append(_LITERAL_ESCAPES[ch])
        elif ord(ch) < 0x20 or ord(ch) == 0x7F or ch in _LINE_TERMINATORS:
            chars.append(f"\\u{ord(ch):04x}")
        else:
            chars.append(ch)
    return '"' + "".join(chars) + '"'


def format_file_header(assembly: str = "") -> list[str]:
    """Return the comment block at the top of every generated file.

    The assembly line is only present when an assembly qualifier is
    configured.
    """
    lines = list(_HEADER_LINES)
    if assembly:
        lines.append(f"// Assembly: {assembly}")
    return lines


def format_tag_class(
    type_name: str, entries: Iterable[tuple[str, str]]
) -> list[str]:
    lines = [
        "/// <summary>Tags defined in the project's TagManager.</summary>",
        f"public sealed class {type_name}",
        "{",
    ]
    for identifier, value in entries:
        lines.append(
            f"{INDENT}public const string {identifier} = {csharp_string_literal(value)};"
        )
    lines.append("}")
    return lines


def format_layer_enums(
    type_name: str, entries: Iterable[tuple[str, int]]
) -> list[str]:
    """Return the plain layer enum followed by its [Flags] mask companion.

    The mask enum is backed by uint so the layer at index 31 keeps the exact
    value 2^31.
    """
    entries = tuple(entries)
    lines = [
        "/// <summary>Layers defined in the project's TagManager.</summary>",
        f"public enum {type_name}",
        "{",
    ]
    lines.extend(f"{INDENT}{identifier} = {index}," for identifier, index in entries)
    lines.extend(
        [
            "}",
            "",
            f"/// <summary>Bit masks for <see cref=\"{type_name}\" />.</summary>",
            "[System.Flags]",
            f"public enum {type_name}{MASKS_SUFFIX} : uint",
            "{",
        ]
    )
    lines.extend(
        f"{INDENT}{identifier} = {1 << index}," for identifier, index in entries
    )
    lines.append("}")
    return lines


def assemble_source(namespace: str, assembly: str, body_lines: Iterable[str]) -> str:
    """Assemble a complete C# file from a type body.

    File structure:
        <header comment block>
                                    <- blank line
        namespace <Name>            <- only when namespace is non-empty
        {
            <body_lines>            <- indented one level inside a namespace
        }
                                    <- trailing newline

    Blank body lines stay empty (no trailing whitespace). Output always uses
    "\\n" line endings.
    """
    parts = format_file_header(assembly)
    parts.append("")
    if namespace:
        parts.append(f"namespace {namespace}")
        parts.append("{")
        parts.extend(INDENT + line if line else "" for line in body_lines)
        parts.append("}")
    else:
        parts.extend(body_lines)
    return "\n".join(parts) + "\n"


def emit_tag_file(
    namespace: str, type_name: str, tags: Iterable[str], assembly: str = ""
) -> str:
    entries = tag_entries(type_name, tags)
    return assemble_source(namespace, assembly, format_tag_class(type_name, entries))


def emit_layer_file(
    namespace: str, type_name: str, layers: Iterable[LayerEntry], assembly: str = ""
) -> str:
    entries = layer_entries(type_name, layers)
    return assemble_source(namespace, assembly, format_layer_enums(type_name, entries))


# ===--- Existing type inspection ---=== #

_NAMESPACE_RE = re.compile(r"^\s*namespace\s+([A-Za-z_][A-Za-z0-9_.]*)\s*$")
_CLASS_RE = re.compile(r"^\s*public sealed class\s+(@?[A-Za-z_][A-Za-z0-9_]*)\s*$")
_ENUM_RE = re.compile(
    r"^\s*public enum\s+(@?[A-Za-z_][A-Za-z0-9_]*)(?:\s*:\s*[a-z]+)?\s*$"
)
_CONST_RE = re.compile(
    r'^\s*public const string\s+(@?[A-Za-z_][A-Za-z0-9_]*)\s*=\s*("(?:[^"\\]|\\.)*")\s*;\s*$'
)
_MEMBER_RE = re.compile(r"^\s*(@?[A-Za-z_][A-Za-z0-9_]*)\s*=\s*(\d+)\s*,?\s*$")

_LITERAL_UNESCAPES = {
    "\\": "\\",
    '"': '"',
    "'": "'",
    "0": "\0",
    "a": "\a",
    "b": "\b",
    "f": "\f",
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "v": "\v",
}


def parse_csharp_string_literal(literal: str) -> str:
    body = literal[1:-1]
    chars: list[str] = []
    i = 0
    while i < len(body):
        ch = body[i]
        if ch != "\\":
            chars.append(ch)
            i += 1
            continue
        code = body[i + 1]
        if code == "u":
            chars.append(chr(int(body[i + 2 : i + 6], 16)))
            i += 6
        else:
            chars.append(_LITERAL_UNESCAPES.get(code, code))
            i += 2
    return "".join(chars)


@dataclass(frozen=True)
class GeneratedSource:
    """Types recovered from one file in the shape this tool emits.

    Attributes:
        namespace: Declared namespace, empty for none.
        classes: Class name -> (identifier, tag value) pairs.
        enums: Enum name -> (identifier, integer value) pairs.
    """

    namespace: str
    classes: dict[str, tuple[tuple[str, str], ...]]
    enums: dict[str, tuple[tuple[str, int], ...]]


def parse_generated_source(text: str) -> GeneratedSource | None:
    """Recover the declared types from a file this generator wrote.

    Only the exact emitted shape is understood; files without the
    generator's header return None. A type declared twice in one file keeps
    its first declaration.
    """
    # Only "\n" separates lines; splitlines() would also break on U+0085,
    # U+2028 and U+2029.
    lines = text.replace("\r\n", "\n").split("\n")
    if GENERATED_MARKER not in (line.rstrip() for line in lines[: len(_HEADER_LINES)]):
        return None

    namespace = ""
    classes: dict[str, tuple[tuple[str, str], ...]] = {}
    enums: dict[str, tuple[tuple[str, int], ...]] = {}
    current_name: str | None = None
    current_kind: str | None = None
    members: list = []

    for line in lines:
        if current_name is None:
            namespace_match = _NAMESPACE_RE.match(line)
            class_match = _CLASS_RE.match(line)
            enum_match = _ENUM_RE.match(line)
            if namespace_match:
                namespace = namespace_match.group(1)
            elif class_match:
                current_name, current_kind, members = class_match.group(1), KIND_TAG, []
            elif enum_match:
                current_name, current_kind, members = enum_match.group(1), KIND_LAYER, []
            continue

        if line.strip() == "}":
            if current_kind == KIND_TAG:
                classes.setdefault(current_name, tuple(members))
            else:
                enums.setdefault(current_name, tuple(members))
            current_name = current_kind = None
            continue

        if current_kind == KIND_TAG:
            const_match = _CONST_RE.match(line)
            if const_match:
                value = parse_csharp_string_literal(const_match.group(2))
                members.append((const_match.group(1), value))
        else:
            member_match = _MEMBER_RE.match(line)
            if member_match:
                members.append((member_match.group(1), int(member_match.group(2))))

    return GeneratedSource(namespace=namespace, classes=classes, enums=enums)


def _is_ignored(path: Path, root: Path) -> bool:
    # Unity skips hidden folders and folders ending in "~".
    parts = path.relative_to(root).parts
    return any(part.startswith(".") or part.endswith("~") for part in parts)


def find_assembly_definitions(project_root: Path) -> dict[Path, str]:
    """Map every folder holding an .asmdef file to its assembly name.

    Raises:
        GenerationError: HOST_UNAVAILABLE when an .asmdef is not valid JSON.
    """
    root = Path(project_root).resolve()
    assemblies: dict[Path, str] = {}
    for search_root in SEARCH_ROOTS:
        base = root / search_root
        if not base.is_dir():
            continue
        for asmdef in sorted(base.rglob("*.asmdef")):
            if _is_ignored(asmdef, root):
                continue
            try:
                data = json.loads(asmdef.read_text(encoding="utf-8-sig"))
            except (OSError, UnicodeDecodeError, json.JSONDecodeError) as err:
                raise GenerationError(
                    "HOST_UNAVAILABLE",
                    f"Cannot read assembly definition {asmdef}: {err}",
                ) from err
            name = data.get("name") if isinstance(data, dict) else None
            assemblies[asmdef.parent] = name if isinstance(name, str) and name else asmdef.stem
    return assemblies


def assembly_for(path: Path, project_root: Path, assemblies: Mapping[Path, str]) -> str:
    """Return the assembly a C# file compiles into, the way Unity assigns it.

    The nearest ancestor folder with an .asmdef wins. Otherwise the file
    lands in one of the predefined Assembly-CSharp assemblies.
    """
    root = Path(project_root).resolve()
    path = Path(path).resolve()
    for parent in path.parents:
        if parent in assemblies:
            return assemblies[parent]
        if parent == root:
            break

    if not path.is_relative_to(root):
        return "Assembly-CSharp"
    folders = path.relative_to(root).parts[:-1]
    firstpass = len(folders) >= 2 and folders[0] == "Assets" and folders[1] in FIRSTPASS_FOLDERS
    name = "Assembly-CSharp"
    if "Editor" in folders:
        name += "-Editor"
    if firstpass:
        name += "-firstpass"
    return name


def iter_source_files(project_root: Path, file_path_hint: str = "") -> Iterator[Path]:
    """Yield C# files to inspect, sorted, each once.

    The hint is included even when it lies outside Assets/ and Packages/.
    """
    root = Path(project_root).resolve()
    candidates: set[Path] = set()
    for search_root in SEARCH_ROOTS:
        base = root / search_root
        if base.is_dir():
            candidates.update(
                path.resolve()
                for path in base.rglob("*.cs")
                if path.is_file() and not _is_ignored(path, root)
            )
    if file_path_hint:
        hint = resolve_target_path(root, file_path_hint)
        if hint.is_file():
            candidates.add(hint.resolve())
    yield from sorted(candidates)


def inspect_existing_type(
    project_root: Path,
    kind: str,
    type_name: str,
    file_path_hint: str = "",
    assembly_qualifier: str = "",
) -> GeneratedTypeSnapshot | None:
    """Find the previously generated type and recover its names and values.

    Tag types are read from the public string constants of a class named
    type_name. Layer types are read from the plain enum named type_name; its
    Masks companion is a different type and is never read.

    Args:
        project_root: Unity project root.
        kind: KIND_TAG or KIND_LAYER.
        type_name: Simple name of the generated type.
        file_path_hint: Configured output path; searched even when it lies
            outside the project's script folders.
        assembly_qualifier: Only consider this assembly. Empty searches all.

    Returns:
        The snapshot, or None when no generated type exists yet.

    Raises:
        GenerationError: AMBIGUOUS_TYPE when the type is defined more than
            once in the searched assemblies. HOST_UNAVAILABLE when a file or
            assembly definition cannot be read.
    """
    root = Path(project_root).resolve()
    assemblies = find_assembly_definitions(root)
    marker = GENERATED_MARKER.encode("utf-8")
    matches: list[GeneratedTypeSnapshot] = []

    for path in iter_source_files(root, file_path_hint):
        try:
            data = path.read_bytes()
        except OSError as err:
            raise GenerationError(
                "HOST_UNAVAILABLE", f"Cannot read {path}: {err}"
            ) from err
        if marker not in data[:1024]:
            continue

        source = parse_generated_source(data.decode("utf-8-sig", errors="replace"))
        if source is None:
            continue
        types = source.classes if kind == KIND_TAG else source.enums
        if type_name not in types:
            continue

        assembly = assembly_for(path, root, assemblies)
        if assembly_qualifier and assembly != assembly_qualifier:
            continue
        matches.append(
            GeneratedTypeSnapshot(
                kind=kind,
                type_name=type_name,
                entries=types[type_name],
                path=path,
                assembly=assembly,
                namespace=source.namespace,
            )
        )

    if not matches:
        return None
    if len(matches) == 1:
        return matches[0]

    found = ", ".join(f"{m.assembly} ({m.path})" for m in matches)
    if assembly_qualifier:
        raise GenerationError(
            "AMBIGUOUS_TYPE",
            f"Type '{type_name}' is defined more than once in assembly "
            f"'{assembly_qualifier}': {found}",
            "Delete the stale generated file.",
        )
    names = sorted({m.assembly for m in matches})
    raise GenerationError(
        "AMBIGUOUS_TYPE",
        f"Type '{type_name}' is defined in more than one place: {found}",
        f"Set assembly_definition to one of: {', '.join(names)}."
        if len(names) > 1
        else "Delete the stale generated file.",
    )


# ===--- Orchestration ---=== #

STATE_IDLE = "idle"
STATE_EVALUATING = "evaluating"
STATE_NO_CHANGE = "no-change"
STATE_GENERATING = "generating"


@dataclass(frozen=True)
class GenerationResult:
    """Outcome of one generation cycle for one target.

    Attributes:
        kind: KIND_TAG or KIND_LAYER.
        type_name: Generated type name.
        path: Output path the file was (or would be) written to.
        written: True when the file was written in this cycle.
        needs_regeneration: Whether the previous type differed from the
            current names, evaluated before writing.
        previous: Snapshot of the previously generated type, None if absent.
        member_count: Number of constants (tags) or enum members (layers).
        line_count: Newline characters in the rendered source.
        byte_count: UTF-8 bytes of the rendered source.
    """

    kind: str
    type_name: str
    path: Path
    written: bool
    needs_regeneration: bool
    previous: GeneratedTypeSnapshot | None
    member_count: int
    line_count: int
    byte_count: int


def render_target(
    kind: str, target: GenerationTarget, name_source
) -> tuple[tuple[tuple[str, str | int], ...], str]:
    """Read current names and render the file; returns (entries, source)."""
    if kind == KIND_TAG:
        tags = name_source.current_tags()
        entries = tag_entries(target.type_name, tags)
        source = emit_tag_file(
            target.namespace, target.type_name, tags, target.assembly_definition
        )
    elif kind == KIND_LAYER:
        layers = name_source.current_layers()
        entries = layer_entries(target.type_name, layers)
        source = emit_layer_file(
            target.namespace, target.type_name, layers, target.assembly_definition
        )
    else:
        raise ValueError(f"Unknown target kind: {kind}")
    return entries, source


def write_source(path: Path, content: str) -> int:
    """Write content as UTF-8 with "\\n" endings; returns bytes written.

    Raises:
        GenerationError: WRITE_ERROR wrapping the underlying OSError.
    """
    data = content.encode("utf-8")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
    except OSError as err:
        raise GenerationError(
            "WRITE_ERROR",
            f"Cannot write {path}: {err}",
            "Check that the path is writable and not locked by another program.",
        ) from err
    return len(data)


class GenerationOrchestrator:
    """Runs generation cycles for the tag and layer targets.

    Settings are borrowed from settings_provider once per cycle and never
    stored. Re-entrant calls are safe: a cycle right after a successful
    write finds the new file and writes nothing.
    """

    def __init__(
        self,
        project_root: Path,
        name_source,
        settings_provider: Callable[[], GeneratorSettings],
    ):
        self.project_root = Path(project_root)
        self.name_source = name_source
        self.settings_provider = settings_provider
        self.states: dict[str, str] = {kind: STATE_IDLE for kind in TARGET_KINDS}

    def can_generate(self, kind: str) -> bool:
        return can_generate(self.settings_provider().target(kind), self.project_root)

    def generate_file(self, kind: str, manual: bool = True) -> GenerationResult:
        """Generate one target.

        Manual runs always write. Automatic runs (manual=False) only write
        when the previous type is out of date.

        Raises:
            GenerationError: NOT_CONFIGURED, AMBIGUOUS_TYPE, WRITE_ERROR,
                HOST_UNAVAILABLE, or INVALID_NAME. Nothing is written.
        """
        target = self.settings_provider().target(kind)
        return self._run_target(kind, target, write=True, manual=manual)

    def check(self, kind: str) -> GenerationResult:
        """Evaluate one target without writing anything."""
        target = self.settings_provider().target(kind)
        return self._run_target(kind, target, write=False, manual=False)

    def on_project_changed(
        self, kinds: Iterable[str] = TARGET_KINDS
    ) -> tuple[GenerationResult, ...]:
        """Automatic path: regenerate auto_generate targets that are stale.

        Targets that cannot be generated are skipped.
        """
        settings = self.settings_provider()
        results: list[GenerationResult] = []
        for kind in kinds:
            target = settings.target(kind)
            if not target.auto_generate or not can_generate(target, self.project_root):
                continue
            results.append(self._run_target(kind, target, write=True, manual=False))
        return tuple(results)

    def register(self, subscribe: Callable[[Callable[[], object]], object]) -> object:
        """Hand on_project_changed to a host subscription function."""
        return subscribe(self.on_project_changed)

    def _run_target(
        self, kind: str, target: GenerationTarget, *, write: bool, manual: bool
    ) -> GenerationResult:
        if not can_generate(target, self.project_root):
            raise GenerationError(
                "NOT_CONFIGURED",
                f"The {kind} target is not configured: type_name must be a C# "
                f"identifier and file_path must name a .cs file.",
                f"Set {kind}.type_name and {kind}.file_path in the settings file.",
            )

        self.states[kind] = STATE_EVALUATING
        try:
            entries, source = render_target(kind, target, self.name_source)
            previous = inspect_existing_type(
                self.project_root,
                kind,
                target.type_name,
                target.file_path,
                target.assembly_definition,
            )
            stale = needs_regeneration(entries, previous)
            path = resolve_target_path(self.project_root, target.file_path)

            written = False
            byte_count = len(source.encode("utf-8"))
            if write and (manual or stale):
                self.states[kind] = STATE_GENERATING
                byte_count = write_source(path, source)
                written = True
            else:
                self.states[kind] = STATE_NO_CHANGE

            return GenerationResult(
                kind=kind,
                type_name=target.type_name,
                path=path,
                written=written,
                needs_regeneration=stale,
                previous=previous,
                member_count=len(entries),
                line_count=source.count("\n"),
                byte_count=byte_count,
            )
        finally:
            self.states[kind] = STATE_IDLE


# ===--- Watcher ---=== #


def _fingerprint(paths: Iterable[Path]) -> tuple:
    stamps = []
    for path in paths:
        try:
            stat = Path(path).stat()
        except OSError:
            # Missing or locked mid-save: treat as absent until the next poll.
            stamps.append((str(path), None))
            continue
        stamps.append((str(path), stat.st_mtime_ns, stat.st_size))
    return tuple(stamps)


def watch_project(
    orchestrator: GenerationOrchestrator,
    watched_paths: Iterable[Path],
    interval: float,
    *,
    on_results: Callable[[tuple[GenerationResult, ...]], None] | None = None,
    on_error: Callable[[GenerationError | ConfigError], None] | None = None,
    max_polls: int | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> None:
    """Poll watched files and run the automatic path when they change.

    Runs one automatic cycle immediately, then polls every interval seconds
    on the calling thread until max_polls is reached (forever when None).
    Generation and settings errors go to on_error when given and are raised
    otherwise; a reported error does not stop the watch, the next change
    retries.
    """
    watched_paths = tuple(watched_paths)

    def _cycle() -> None:
        try:
            results = orchestrator.on_project_changed()
        except (GenerationError, ConfigError) as err:
            if on_error is None:
                raise
            on_error(err)
            return
        if on_results is not None:
            on_results(results)

    last = _fingerprint(watched_paths)
    _cycle()
    polls = 0
    while max_polls is None or polls < max_polls:
        sleep(interval)
        polls += 1
        current = _fingerprint(watched_paths)
        if current == last:
            continue
        last = current
        _cycle()


# ===--- CLI config contracts ---=== #

MODE_GENERATE = "generate"
MODE_AUTO = "auto"
MODE_CHECK = "check"
MODE_WATCH = "watch"


@dataclass(frozen=True)
class GenerateConfig:
    mode: str
    kinds: tuple[str, ...]
    project_root: Path
    settings_path: Path
    interval: float = DEFAULT_WATCH_INTERVAL


@dataclass(frozen=True)
class DiscoveryConfig:
    command: str
    project_root: Path
    settings_path: Path


def validate_path_exists(
    path: Path | None, flag: str, suggestion: str | None = None
) -> Path:
    if path is None:
        raise ConfigError(
            "PATH_NOT_FOUND",
            f"{flag} is required: no path provided.",
            suggestion or f"Pass the path explicitly: {flag} /path/to/resource",
        )
    if path.exists():
        return path
    raise ConfigError(
        "PATH_NOT_FOUND",
        f"Path for {flag} does not exist: {path}",
        suggestion or "Provide an existing path for this flag.",
    )


def build_argument_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=GENERATOR_NAME,
        description="Generate C# tag and layer types for a Unity project",
    )

    parser.add_argument("--project", type=Path, default=None)
    parser.add_argument("--settings", type=Path, default=None)
    parser.add_argument("--tags", action="store_true", default=False)
    parser.add_argument("--layers", action="store_true", default=False)

    mode_group = parser.add_mutually_exclusive_group()
    mode_group.add_argument("--auto", action="store_true", default=False)
    mode_group.add_argument("--check", action="store_true", default=False)
    mode_group.add_argument("--watch", action="store_true", default=False)
    mode_group.add_argument("--list-tags", action="store_true", default=False)
    mode_group.add_argument("--list-layers", action="store_true", default=False)

    parser.add_argument("--interval", type=float, default=None)

    return parser


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = build_argument_parser()
    return parser.parse_args(argv)


def validate_config(args: argparse.Namespace) -> GenerateConfig | DiscoveryConfig:
    has_discovery_command = bool(args.list_tags or args.list_layers)

    if has_discovery_command and (args.tags or args.layers):
        raise ConfigError(
            "CONFLICT_MODES",
            "--tags/--layers cannot be combined with --list-tags/--list-layers.",
            "Choose either a generation mode or one listing command.",
        )
    if args.interval is not None and not args.watch:
        raise ConfigError(
            "CONFLICT_MODES",
            "--interval requires --watch.",
            "Add --watch or remove --interval.",
        )
    if args.interval is not None and args.interval <= 0:
        raise ConfigError(
            "INVALID_INTERVAL",
            f"--interval must be positive, got {args.interval}.",
            "Pass a polling interval in seconds, for example --interval 2.",
        )

    project_root = validate_path_exists(
        args.project if args.project is not None else Path.cwd(),
        "--project",
        "Pass the Unity project root: --project /path/to/UnityProject",
    )

    if args.settings is not None:
        settings_path = validate_path_exists(args.settings, "--settings")
    else:
        settings_path = project_root / DEFAULT_SETTINGS_PATH

    if has_discovery_command:
        command = "list-tags" if args.list_tags else "list-layers"
        return DiscoveryConfig(
            command=command, project_root=project_root, settings_path=settings_path
        )

    if args.auto:
        mode = MODE_AUTO
    elif args.check:
        mode = MODE_CHECK
    elif args.watch:
        mode = MODE_WATCH
    else:
        mode = MODE_GENERATE

    selected = tuple(
        kind
        for kind, flag in ((KIND_TAG, args.tags), (KIND_LAYER, args.layers))
        if flag
    )
    return GenerateConfig(
        mode=mode,
        kinds=selected or TARGET_KINDS,
        project_root=project_root,
        settings_path=settings_path,
        interval=args.interval if args.interval is not None else DEFAULT_WATCH_INTERVAL,
    )


def build_config(argv: list[str] | None = None) -> GenerateConfig | DiscoveryConfig:
    return validate_config(parse_args(argv))


# ===--- Discovery ---=== #


def format_tags_table(tags: tuple[str, ...], type_name: str = "Tag") -> str:
    """Return the --list-tags output: each tag with its identifier in type_name."""
    entries = tag_entries(type_name, tags)
    lines = [f"Tags in {TAG_MANAGER_ASSET.as_posix()} ({len(tags)}):", ""]
    for identifier, name in entries:
        lines.append(f"  {name:<24} {identifier}")
    lines.append("")
    return "\n".join(lines)


def format_layers_table(layers: tuple[LayerEntry, ...], type_name: str = "Layer") -> str:
    """Return the --list-layers output; unnamed slots are left out."""
    names = {entry.index: entry.name for entry in layers if entry.name}
    entries = layer_entries(type_name, layers)
    lines = [f"Layers in {TAG_MANAGER_ASSET.as_posix()} ({len(entries)} named):", ""]
    for identifier, index in entries:
        lines.append(
            f"  {index:>2}  {names[index]:<24} {identifier:<24} mask {1 << index}"
        )
    lines.append("")
    return "\n".join(lines)


def run_discovery(config: DiscoveryConfig) -> None:
    source = TagManagerNameSource(config.project_root)
    settings = load_settings(config.settings_path)
    if config.command == "list-tags":
        print(format_tags_table(source.current_tags(), settings.tag.type_name), end="")
    elif config.command == "list-layers":
        print(
            format_layers_table(source.current_layers(), settings.layer.type_name),
            end="",
        )
    else:
        raise ValueError(f"Unknown discovery command: {config.command}")


# ===--- Summary report ---=== #


@dataclass(frozen=True)
class GenerationSummary:
    """Immutable data for the post-run console report.

    Attributes:
        heading: First line of the report.
        project_root: Project root as string.
        settings_path: Settings file as string.
        results: One result per processed target, in processing order.
        skipped: Kinds that were not processed (disabled or not configured).
    """

    heading: str
    project_root: str
    settings_path: str
    results: tuple[GenerationResult, ...]
    skipped: tuple[str, ...] = ()


def result_status(result: GenerationResult) -> str:
    if result.written:
        return "written (changed)" if result.needs_regeneration else "written (unchanged)"
    return "stale" if result.needs_regeneration else "up to date"


def build_generation_summary(
    heading: str,
    config: GenerateConfig,
    results: Iterable[GenerationResult],
    skipped: Iterable[str] = (),
) -> GenerationSummary:
    return GenerationSummary(
        heading=heading,
        project_root=str(config.project_root),
        settings_path=str(config.settings_path),
        results=tuple(results),
        skipped=tuple(skipped),
    )


def format_generation_summary(summary: GenerationSummary) -> str:
    """Render a GenerationSummary to the console string.

    Output format:
        Tag/layer types generated:

          Project:    /path/to/UnityProject
          Settings:   /path/to/UnityProject/ProjectSettings/TagLayerTypeGenerator.yaml

          Targets:
            Tag        8 members  written (changed)    Assets/Scripts/Generated/Tag.cs
            Layer      6 members  up to date           Assets/Scripts/Generated/Layer.cs

    Skipped targets are listed after the processed ones. Returns a string
    with exactly one trailing newline.
    """
    lines = [
        summary.heading,
        "",
        f"  Project:    {summary.project_root}",
        f"  Settings:   {summary.settings_path}",
        "",
        "  Targets:",
    ]
    if not summary.results and not summary.skipped:
        lines.append("    (none)")
    for result in summary.results:
        members = f"{result.member_count:>3} members"
        lines.append(
            f"    {result.type_name:<10} {members}  {result_status(result):<20} {result.path}"
        )
    for kind in summary.skipped:
        lines.append(f"    {kind:<10} skipped (disabled or not configured)")
    lines.append("")
    return "\n".join(lines)


def print_generation_summary(summary: GenerationSummary) -> None:
    print(format_generation_summary(summary), end="")


# ===--- Run modes ---=== #


def build_orchestrator(config: GenerateConfig) -> GenerationOrchestrator:
    settings_path = config.settings_path
    return GenerationOrchestrator(
        config.project_root,
        TagManagerNameSource(config.project_root),
        lambda: load_settings(settings_path),
    )


def run_generate(config: GenerateConfig) -> tuple[GenerationResult, ...]:
    """Manual generation: write every selected target unconditionally."""
    orchestrator = build_orchestrator(config)
    print(f"Reading: {orchestrator.name_source.asset_path}")
    results = tuple(orchestrator.generate_file(kind) for kind in config.kinds)
    print_generation_summary(
        build_generation_summary("Tag/layer types generated:", config, results)
    )
    return results


def run_auto(config: GenerateConfig) -> tuple[GenerationResult, ...]:
    orchestrator = build_orchestrator(config)
    results = orchestrator.on_project_changed(config.kinds)
    processed = {result.kind for result in results}
    skipped = [kind for kind in config.kinds if kind not in processed]
    print_generation_summary(
        build_generation_summary("Tag/layer types generated:", config, results, skipped)
    )
    return results


def run_check(config: GenerateConfig) -> bool:
    """Report stale targets without writing; returns True if any is stale."""
    orchestrator = build_orchestrator(config)
    results: list[GenerationResult] = []
    skipped: list[str] = []
    for kind in config.kinds:
        if orchestrator.can_generate(kind):
            results.append(orchestrator.check(kind))
        else:
            skipped.append(kind)
    print_generation_summary(
        build_generation_summary("Tag/layer types checked:", config, results, skipped)
    )
    return any(result.needs_regeneration for result in results)


def run_watch(
    config: GenerateConfig,
    max_polls: int | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> None:
    orchestrator = build_orchestrator(config)
    watched = (orchestrator.name_source.asset_path, config.settings_path)
    print(f"Watching: {', '.join(str(path) for path in watched)} every {config.interval}s")

    def _report(results: tuple[GenerationResult, ...]) -> None:
        for result in results:
            if result.written:
                print(f"  Regenerated {result.type_name}: {result.path}")

    def _report_error(err: GenerationError | ConfigError) -> None:
        label = "Config error" if isinstance(err, ConfigError) else "Generation error"
        print(f"{label} [{err.code}]: {err.message}")
        if err.suggestion:
            print(f"Hint: {err.suggestion}")

    watch_project(
        orchestrator,
        watched,
        config.interval,
        on_results=_report,
        on_error=_report_error,
        max_polls=max_polls,
        sleep=sleep,
    )


# ===--- Main ---=== #


def main(argv: list[str] | None = None):
    try:
        config = build_config(argv)
        if isinstance(config, DiscoveryConfig):
            run_discovery(config)
            return
        if config.mode == MODE_GENERATE:
            run_generate(config)
        elif config.mode == MODE_AUTO:
            run_auto(config)
        elif config.mode == MODE_CHECK:
            if run_check(config):
                raise SystemExit(1)
        else:
            try:
                run_watch(config)
            except KeyboardInterrupt:
                print("Stopped watching.")
    except ConfigError as err:
        print(f"Config error [{err.code}]: {err.message}")
        if err.suggestion:
            print(f"Hint: {err.suggestion}")
        raise SystemExit(1) from err
    except GenerationError as err:
        print(f"Generation error [{err.code}]: {err.message}")
        if err.suggestion:
            print(f"Hint: {err.suggestion}")
        raise SystemExit(1) from err


if __name__ == "__main__":
    main()
