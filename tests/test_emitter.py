from __future__ import annotations

import pytest

import typegen

HEADER = (
    "// <auto-generated>\n"
    "//     This code was generated by tag-layer-typegen.\n"
    "//     Changes to this file may cause incorrect behavior and will be lost if\n"
    "//     the code is regenerated.\n"
    "// </auto-generated>\n"
)


def _layers(named: dict[int, str]) -> tuple[typegen.LayerEntry, ...]:
    return typegen.StaticNameSource(layers=named).current_layers()


def test_t_01_emit_tag_file_scenario_a_exact_output() -> None:
    source = typegen.emit_tag_file("", "Tag", ["Untagged", "Player"])

    assert source == (
        HEADER
        + "\n"
        + "/// <summary>Tags defined in the project's TagManager.</summary>\n"
        + "public sealed class Tag\n"
        + "{\n"
        + '    public const string Untagged = "Untagged";\n'
        + '    public const string Player = "Player";\n'
        + "}\n"
    )


def test_t_02_emit_tag_file_preserves_input_order() -> None:
    source = typegen.emit_tag_file("", "Tag", ["Zeta", "Alpha", "Mid"])

    assert source.index("Zeta") < source.index("Alpha") < source.index("Mid")


def test_t_03_emit_is_deterministic_for_identical_input() -> None:
    tags = ["Untagged", "Enemy Spawn", "Player"]
    layers = _layers({0: "Default", 6: "Collectable", 31: "Last"})

    assert typegen.emit_tag_file("Game", "Tag", tags) == typegen.emit_tag_file(
        "Game", "Tag", tags
    )
    assert typegen.emit_layer_file("Game", "Layer", layers) == typegen.emit_layer_file(
        "Game", "Layer", layers
    )


def test_t_04_emit_layer_file_scenario_c_single_named_slot() -> None:
    source = typegen.emit_layer_file("", "Layer", _layers({6: "Collectable"}))

    assert source == (
        HEADER
        + "\n"
        + "/// <summary>Layers defined in the project's TagManager.</summary>\n"
        + "public enum Layer\n"
        + "{\n"
        + "    Collectable = 6,\n"
        + "}\n"
        + "\n"
        + '/// <summary>Bit masks for <see cref="Layer" />.</summary>\n'
        + "[System.Flags]\n"
        + "public enum LayerMasks : uint\n"
        + "{\n"
        + "    Collectable = 64,\n"
        + "}\n"
    )


@pytest.mark.parametrize("index", range(32))
def test_t_05_mask_value_is_two_to_the_index(index: int) -> None:
    source = typegen.emit_layer_file("", "Layer", _layers({index: "Named"}))

    masks = typegen.parse_generated_source(source).enums["LayerMasks"]
    plain = typegen.parse_generated_source(source).enums["Layer"]
    assert masks == (("Named", 2**index),)
    assert plain == (("Named", index),)


def test_t_06_unnamed_slots_never_emitted() -> None:
    layers = _layers({0: "Default", 4: "Water"})

    source = typegen.emit_layer_file("", "Layer", layers)
    parsed = typegen.parse_generated_source(source)

    assert [name for name, _ in parsed.enums["Layer"]] == ["Default", "Water"]
    assert [name for name, _ in parsed.enums["LayerMasks"]] == ["Default", "Water"]
    assert " = 1," in source and " = 16," in source
    assert source.count(" = ") == 4


def test_t_07_layers_emitted_by_ascending_index_regardless_of_input_order() -> None:
    layers = (
        typegen.LayerEntry(9, "Enemies"),
        typegen.LayerEntry(3, "Ground"),
        typegen.LayerEntry(0, "Default"),
    )

    parsed = typegen.parse_generated_source(
        typegen.emit_layer_file("", "Layer", layers)
    )

    assert parsed.enums["Layer"] == (("Default", 0), ("Ground", 3), ("Enemies", 9))


def test_t_08_namespace_wraps_and_indents_body() -> None:
    source = typegen.emit_tag_file("My.Game", "Tag", ["Player"])

    assert "namespace My.Game\n{\n" in source
    assert '        public const string Player = "Player";\n' in source
    assert source.endswith("    }\n}\n")


def test_t_09_empty_namespace_omits_namespace_block() -> None:
    source = typegen.emit_layer_file("", "Layer", _layers({0: "Default"}))

    assert "namespace" not in source
    assert "\n\n\n" not in source
    assert not any(line != line.rstrip() for line in source.splitlines())


def test_t_10_assembly_comment_only_when_configured() -> None:
    with_assembly = typegen.emit_tag_file("", "Tag", ["Player"], assembly="Game.Runtime")
    without = typegen.emit_tag_file("", "Tag", ["Player"])

    assert "// Assembly: Game.Runtime\n" in with_assembly
    assert "// Assembly:" not in without


def test_t_11_tag_values_are_escaped_literals() -> None:
    source = typegen.emit_tag_file("", "Tag", ['Say "Hi"', "Back\\Slash"])

    assert 'public const string SayHi = "Say \\"Hi\\"";' in source
    assert 'public const string BackSlash = "Back\\\\Slash";' in source


@pytest.mark.parametrize(
    ("char", "escape"),
    [("\x85", "\\u0085"), ("\u2028", "\\u2028"), ("\u2029", "\\u2029")],
)
def test_t_11b_unicode_line_terminators_are_escaped(char: str, escape: str) -> None:
    source = typegen.emit_tag_file("", "Tag", [f"Nel{char}Tag"])

    assert char not in source
    assert f'public const string NelTag = "Nel{escape}Tag";' in source


def test_t_12_emitted_source_uses_lf_and_single_trailing_newline() -> None:
    source = typegen.emit_tag_file("Game", "Tag", ["Player"])

    assert "\r" not in source
    assert source.endswith("}\n")
    assert not source.endswith("\n\n")


def test_t_13_empty_tag_list_emits_empty_class() -> None:
    source = typegen.emit_tag_file("", "Tag", [])

    assert "public sealed class Tag\n{\n}\n" in source


def test_t_14_layer_index_out_of_range_is_rejected() -> None:
    with pytest.raises(ValueError):
        typegen.emit_layer_file("", "Layer", [typegen.LayerEntry(32, "Overflow")])


# ===--- Identifier sanitization ---=== #


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("Player", "Player"),
        ("Ignore Raycast", "IgnoreRaycast"),
        ("enemy spawn-point", "enemySpawnPoint"),
        ("2D Only", "_2DOnly"),
        ("class", "@class"),
        ("Default", "Default"),
        ("under_score", "under_score"),
        ("Ünicode Tag", "nicodeTag"),
    ],
)
def test_t_15_to_identifier_applies_sanitization_rules(name: str, expected: str) -> None:
    assert typegen.to_identifier(name) == expected


def test_t_16_to_identifier_rejects_names_without_identifier_characters() -> None:
    with pytest.raises(typegen.GenerationError) as exc_info:
        typegen.to_identifier("!!!")

    assert exc_info.value.code == "INVALID_NAME"


def test_t_17_assign_identifiers_suffixes_collisions_in_input_order() -> None:
    identifiers = typegen.assign_identifiers(["Enemy Spawn", "Enemy-Spawn", "EnemySpawn"])

    assert identifiers == ("EnemySpawn", "EnemySpawn_1", "EnemySpawn_2")


def test_t_18_tag_named_like_class_gets_suffix() -> None:
    assert typegen.tag_entries("Tag", ["Tag", "Player"]) == (
        ("Tag_1", "Tag"),
        ("Player", "Player"),
    )


def test_t_19_layer_named_like_mask_enum_gets_suffix() -> None:
    entries = typegen.layer_entries(
        "Layer", [typegen.LayerEntry(8, "LayerMasks"), typegen.LayerEntry(9, "Layer")]
    )

    assert entries == (("LayerMasks_1", 8), ("Layer_1", 9))


def test_t_20_keyword_identifier_survives_parse() -> None:
    source = typegen.emit_tag_file("", "Tag", ["class"])

    parsed = typegen.parse_generated_source(source)

    assert parsed.classes["Tag"] == (("@class", "class"),)
