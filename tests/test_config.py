"""Tests du module config."""

from pathlib import Path

import pytest

from lappel.config import Config, ConfigError, ExpectedCount, RosterPolicy


def test_config_resolve_paths(tmp_path: Path) -> None:
    """Les chemins relatifs sont résolus par rapport au dossier du fichier config."""
    config_dir = tmp_path / "mon_cours"
    config_dir.mkdir()
    (config_dir / "data").mkdir()

    config = Config(
        table_file="data/presence.xlsx",
        students_file="data/students.json",
    )
    config.resolve_paths(config_dir)

    assert Path(config.table_file).name == "presence.xlsx"
    assert Path(config.table_file).parent.parent == config_dir.resolve()
    assert Path(config.students_file).is_absolute()
    assert config.staff_file == ""


def test_config_load_resolves_paths(tmp_path: Path) -> None:
    """Config.load() résout automatiquement les chemins relatifs."""
    config_path = tmp_path / "config.json"
    config_path.write_text(
        """
        {
            "table_file": "data/presence.csv",
            "staff_file": "data/staff.csv",
            "staff": {"unique_once": true, "expected": 1}
        }
    """,
        encoding="utf-8",
    )

    config = Config.load(config_path)
    assert Path(config.table_file).is_absolute()
    assert config.staff.unique_once is True
    assert config.staff.expected == ExpectedCount(1)
    assert config.students.expected.is_auto


def test_expected_count_parse() -> None:
    assert ExpectedCount.parse("auto").is_auto
    assert ExpectedCount.parse(" ANY ").value == "any"
    assert ExpectedCount.parse("at-least-one").value == "at-least-one"
    assert ExpectedCount.parse(2).value == 2
    assert ExpectedCount.parse("3").value == 3


@pytest.mark.parametrize("raw", ["many", -1, True, 1.5, None, "-2"])
def test_expected_count_invalid(raw: object) -> None:
    with pytest.raises(ConfigError, match="expected"):
        ExpectedCount.parse(raw)


def test_expected_count_is_satisfied() -> None:
    assert ExpectedCount.parse("any").is_satisfied(0)
    assert ExpectedCount.parse("any").is_satisfied(7)
    assert ExpectedCount.parse("at-least-one").is_satisfied(2)
    assert not ExpectedCount.parse("at-least-one").is_satisfied(0)
    assert ExpectedCount.parse(1).is_satisfied(1)
    assert not ExpectedCount.parse(1).is_satisfied(2)


def test_expected_auto_must_be_resolved() -> None:
    with pytest.raises(ConfigError, match="résolu"):
        ExpectedCount.parse("auto").is_satisfied(1)


def test_roster_policy_invalid_unique_once() -> None:
    with pytest.raises(ConfigError, match="unique_once"):
        RosterPolicy.from_dict({"unique_once": "yes"})


def test_config_validation_missing_table() -> None:
    with pytest.raises(ConfigError, match="table_file requis"):
        Config.from_dict({"students_file": "s.json"})


def test_config_validation_missing_rosters() -> None:
    with pytest.raises(ConfigError, match="students_file ou staff_file requis"):
        Config.from_dict({"table_file": "t.xlsx"})


def test_config_validation_fraction_out_of_range() -> None:
    with pytest.raises(ConfigError, match="min_match_fraction"):
        Config.from_dict({"table_file": "t.xlsx", "students_file": "s.json", "min_match_fraction": 0})


def test_config_validation_top_k() -> None:
    with pytest.raises(ConfigError, match="top_k"):
        Config(top_k=0)


def test_config_policy_lookup() -> None:
    config = Config(students=RosterPolicy(unique_once=True))
    assert config.policy("students").unique_once
    assert not config.policy("staff").unique_once
    with pytest.raises(ConfigError, match="roster inconnu"):
        config.policy("assistants")


@pytest.mark.parametrize("raw", ["bogus", -3])
def test_roster_policy_rejects_malformed_expected_count(raw: object) -> None:
    """Un ExpectedCount construit à la main est validé comme depuis le JSON."""
    with pytest.raises(ConfigError, match="expected"):
        RosterPolicy(expected=ExpectedCount(raw))
    with pytest.raises(ConfigError, match="expected"):
        Config(students=RosterPolicy(expected=raw))


def test_roster_policy_normalizes_expected() -> None:
    assert RosterPolicy(expected="ANY").expected == ExpectedCount("any")
    assert RosterPolicy(expected=2).expected == ExpectedCount(2)


def test_roster_policy_unique_once_must_be_bool() -> None:
    with pytest.raises(ConfigError, match="unique_once"):
        RosterPolicy(unique_once="yes")
