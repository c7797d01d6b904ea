"""Tests de base du linker."""

import copy

import pytest

from lappel.config import Config, ConfigError, ExpectedCount, NoIdentitiesError, RosterPolicy
from lappel.matching.linker import Linker
from lappel.matching.schema import DATA_COLUMN, ColumnType, Table


@pytest.fixture
def students() -> list[dict]:
    return [
        {"id": 1, "name": "Jane Doe", "sortable_name": "Doe, Jane", "login_id": "jdoe", "email": "jdoe@uni.edu"},
        {"id": 2, "name": "John Smith", "sortable_name": "Smith, John", "login_id": "jsmith", "email": "jsmith@uni.edu"},
        {"id": 3, "name": "Ada Lovelace", "sortable_name": "Lovelace, Ada", "login_id": "alove", "email": "alove@uni.edu"},
        {"id": 4, "name": "Alan Turing", "sortable_name": "Turing, Alan", "login_id": "aturing", "email": "at@uni.edu"},
    ]


@pytest.fixture
def staff() -> list[dict]:
    return [
        {"id": 100, "name": "Grace Hopper", "sortable_name": "Hopper, Grace", "login_id": "ghopper"},
        {"id": 101, "name": "Barbara Liskov", "sortable_name": "Liskov, Barbara", "login_id": "bliskov"},
    ]


@pytest.fixture
def table() -> Table:
    return Table(
        headers=["Étudiant", "Email", "TA", "Remarque"],
        rows=[
            ["Jane Doe", "jdoe@uni.edu", "ghopper", "rendu à l'heure"],
            ["John Smith", "jsmith@uni.edu", "bliskov", "en retard"],
            ["Ada Lovelace", "alove@uni.edu", "ghopper", ""],
            ["Alan Turing", "at@uni.edu", "bliskov", "absent"],
        ],
    )


def test_linker_classifies_and_matches(table: Table, students: list[dict], staff: list[dict]) -> None:
    report = Linker(Config()).run(table, students, staff)
    assert report.col_types == [
        ColumnType("students", "name"),
        ColumnType("students", "email"),
        ColumnType("staff", "login_id"),
        DATA_COLUMN,
    ]
    assert report.data_headers == ["Remarque"]
    assert report.expected_counts == {"students": 1, "staff": 1}
    assert len(report.matched_rows) == 4
    assert report.unmatched_rows == []
    first = report.matched_rows[0]
    assert first.row_index == 0
    assert first.data_columns == ["rendu à l'heure"]
    # Nom et email désignent la même étudiante : un seul match
    assert [s["id"] for s in first.students] == [1]
    assert [s["id"] for s in first.staff] == [100]


def test_linker_table_echo(table: Table, students: list[dict], staff: list[dict]) -> None:
    report = Linker(Config()).run(table, students, staff)
    assert report.table is table


def test_hydration_returns_caller_records(table: Table, students: list[dict], staff: list[dict]) -> None:
    before = copy.deepcopy(students)
    report = Linker(Config()).run(table, students, staff)
    assert report.matched_rows[1].students[0] is students[1]
    assert report.matched_rows[1].students[0] == before[1]
    assert students == before


def test_determinism(table: Table, students: list[dict], staff: list[dict]) -> None:
    table.rows.append(["Jon Smith", "", "", "inconnu"])
    config = Config(students=RosterPolicy(unique_once=True))
    first = Linker(config).run(table, students, staff)
    second = Linker(config).run(table, students, staff)
    assert first == second


def test_no_identities_refused(table: Table) -> None:
    with pytest.raises(NoIdentitiesError, match="Aucune identité"):
        Linker(Config()).run(table, [], [])
    with pytest.raises(ConfigError):
        Linker(Config()).run(table)


def test_single_roster_is_enough(table: Table, staff: list[dict]) -> None:
    report = Linker(Config()).run(table, [], staff)
    assert report.col_types[2] == ColumnType("staff", "login_id")
    assert report.col_types[0] == DATA_COLUMN
    assert report.expected_counts == {"students": 0, "staff": 1}
    assert len(report.matched_rows) == 4


def test_auto_expected_count(students: list[dict]) -> None:
    """Comptes [1, 1, 1, 2, 0] : attendu = round(5 / 4) = 1 ; la ligne à 2 est rejetée."""
    table = Table(
        headers=["Étudiant", "Binôme"],
        rows=[
            ["Jane Doe", ""],
            ["John Smith", ""],
            ["Ada Lovelace", ""],
            ["Alan Turing", "jdoe@uni.edu"],
            ["Personne", ""],
        ],
    )
    report = Linker(Config()).run(table, students, [])
    assert report.col_types == [ColumnType("students", "name"), ColumnType("students", "email")]
    assert report.expected_counts["students"] == 1
    assert [r.row_index for r in report.matched_rows] == [0, 1, 2]
    assert [r.row_index for r in report.unmatched_rows] == [3, 4]
    reasons = report.unmatched_rows[0].reasons
    assert [r.code for r in reasons] == ["wrong_count"]
    assert reasons[0].roster == "students"
    assert "2" in reasons[0].message


def test_auto_without_any_match_rejects_all(students: list[dict]) -> None:
    table = Table(headers=["Commentaire"], rows=[["rien"], ["toujours rien"]])
    report = Linker(Config()).run(table, students, [])
    assert report.expected_counts["students"] == -1
    assert report.matched_rows == []
    assert len(report.unmatched_rows) == 2


def test_uniqueness_is_retroactive(table: Table, students: list[dict], staff: list[dict]) -> None:
    """Jane apparaît lignes 1 et 4 : les deux lignes sont rejetées, raison nommant Jane."""
    table.rows.append(["Jane Doe", "jdoe@uni.edu", "bliskov", "doublon"])
    config = Config(students=RosterPolicy(unique_once=True))
    report = Linker(config).run(table, students, staff)
    assert [r.row_index for r in report.unmatched_rows] == [0, 4]
    for row in report.unmatched_rows:
        assert [r.code for r in row.reasons] == ["disqualified"]
        assert row.reasons[0].identity_id == 1
        assert "Jane Doe" in row.reasons[0].message
        assert "étudiant" in row.reasons[0].message
    assert [r.row_index for r in report.matched_rows] == [1, 2, 3]


def test_uniqueness_off_allows_repeats(table: Table, students: list[dict], staff: list[dict]) -> None:
    table.rows.append(["Jane Doe", "", "bliskov", "deuxième passage"])
    report = Linker(Config()).run(table, students, staff)
    assert len(report.matched_rows) == 5


def test_all_reasons_collected(table: Table, students: list[dict], staff: list[dict]) -> None:
    table.rows.append(["Jane Doe", "jsmith@uni.edu", "", "mélange"])
    config = Config(students=RosterPolicy(unique_once=True), staff=RosterPolicy(expected=ExpectedCount(1)))
    report = Linker(config).run(table, students, staff)
    last = report.unmatched_rows[-1]
    assert last.row_index == 4
    codes = [(r.code, r.roster) for r in last.reasons]
    assert codes == [
        ("disqualified", "students"),
        ("disqualified", "students"),
        ("wrong_count", "students"),
        ("wrong_count", "staff"),
    ]


def test_explicit_expected_counts(table: Table, students: list[dict], staff: list[dict]) -> None:
    config = Config(
        students=RosterPolicy(expected=ExpectedCount.parse("at-least-one")),
        staff=RosterPolicy(expected=ExpectedCount.parse("any")),
    )
    table.rows.append(["", "", "", "ligne sans personne"])
    report = Linker(config).run(table, students, staff)
    assert report.expected_counts == {"students": "at-least-one", "staff": "any"}
    assert [r.row_index for r in report.unmatched_rows] == [4]


def test_suggestions_for_unmatched_rows(table: Table, students: list[dict], staff: list[dict]) -> None:
    table.rows.append(["Jon Smith", "", "", "orthographe"])
    report = Linker(Config()).run(table, students, staff)
    row = report.unmatched_rows[0]
    assert row.row_index == 4
    assert row.potential_students[0].identity is students[1]
    assert len(row.potential_students) == 4
    assert len(row.potential_staff) == 2
    confidences = [s.confidence for s in row.potential_students]
    assert confidences == sorted(confidences, reverse=True)


def test_claimed_identities_excluded_from_suggestions(
    table: Table, students: list[dict], staff: list[dict]
) -> None:
    """Sous unicité, une identité acceptée ailleurs n'est plus suggérée."""
    table.rows.append(["Jon Smith", "", "", "orthographe"])
    config = Config(students=RosterPolicy(unique_once=True))
    report = Linker(config).run(table, students, staff)
    row = report.unmatched_rows[0]
    assert row.potential_students == []
    # Pas d'unicité pour staff : tous les membres restent suggérés
    assert len(row.potential_staff) == 2


def test_linker_rejects_policy_modified_after_config(students: list[dict], table: Table) -> None:
    """Une politique invalide est refusée avant tout traitement de ligne."""
    config = Config()
    config.students.expected = ExpectedCount("bogus")
    with pytest.raises(ConfigError, match="expected invalide"):
        Linker(config).run(table, students, [])
