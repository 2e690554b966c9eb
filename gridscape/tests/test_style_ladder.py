import pytest

from gridscape.config.style_ladder import clamp_level, load_style_ladder


def test_default_ladder_covers_every_operation_register_and_level():
    ladder = load_style_ladder()
    for operation in ("elevate", "ground", "expand"):
        for register in ("speaking", "writing"):
            for level in (1, 2):
                assert ladder["operations"][operation][register][level]


def test_yaml_override_is_merged_over_defaults(tmp_path):
    override = tmp_path / "ladder.yaml"
    override.write_text(
        "personas:\n"
        "  pirate: Rewrite this as a pirate would say it.\n"
        "operations:\n"
        "  elevate:\n"
        "    writing:\n"
        "      2: CUSTOM LITERARY BLOCK\n",
        encoding="utf-8",
    )
    ladder = load_style_ladder(str(override))
    assert ladder["personas"]["pirate"] == "Rewrite this as a pirate would say it."
    assert "hemingway" in ladder["personas"]
    assert ladder["operations"]["elevate"]["writing"][2] == "CUSTOM LITERARY BLOCK"
    assert ladder["operations"]["elevate"]["writing"][1]


def test_loaded_ladder_is_a_copy(tmp_path):
    first = load_style_ladder(str(tmp_path / "missing.yaml"))
    first["personas"].clear()
    second = load_style_ladder(str(tmp_path / "missing.yaml"))
    assert second["personas"]


def test_non_mapping_yaml_is_rejected(tmp_path):
    override = tmp_path / "bad.yaml"
    override.write_text("- just\n- a list\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_style_ladder(str(override))


def test_clamp_level_bounds():
    assert clamp_level(-1) == 1
    assert clamp_level(1) == 1
    assert clamp_level(2) == 2
    assert clamp_level(7) == 2
