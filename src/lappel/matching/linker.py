"""Moteur de linkage : classement des colonnes, matching, politique par ligne."""

from __future__ import annotations

from typing import Any, Sequence

import structlog

from lappel.config import Config, ExpectedCount, NoIdentitiesError, RosterPolicy
from lappel.matching.classifier import classify_columns
from lappel.matching.identities import normalize_identities
from lappel.matching.index import FieldIndex
from lappel.matching.schema import (
    ROSTER_LABELS,
    ROSTERS,
    ColumnType,
    MatchedRow,
    MatchReport,
    NormalizedIdentity,
    RawIdentity,
    Rejection,
    Suggestion,
    Table,
    UnmatchedRow,
)
from lappel.matching.scorers import ConfidenceScorer, exact_match, round_half_up
from lappel.normalize import safe_str

logger = structlog.get_logger()

# Aucune ligne n'a de match : nombre inatteignable, toutes les lignes sont rejetées
UNREACHABLE_COUNT = -1

RowMatches = dict[str, list[NormalizedIdentity]]


class Linker:
    """Moteur de linkage entre un tableau et les rosters students/staff."""

    def __init__(self, config: Config) -> None:
        self.config = config
        self.min_match_fraction = config.min_match_fraction
        # Revalide les politiques (modifiables après construction de Config)
        self.policies: dict[str, RosterPolicy] = {}
        for roster in ROSTERS:
            policy = config.policy(roster)
            self.policies[roster] = RosterPolicy(policy.unique_once, policy.expected)

    def run(
        self,
        table: Table,
        students: Sequence[RawIdentity] | None = None,
        staff: Sequence[RawIdentity] | None = None,
    ) -> MatchReport:
        """
        Exécute le matching pour toutes les lignes du tableau.

        Raises:
            NoIdentitiesError: Si les deux rosters sont vides.

        Returns:
            MatchReport (classification des colonnes, lignes appariées et rejetées).
        """
        raw_rosters = {"students": list(students or []), "staff": list(staff or [])}
        if not any(raw_rosters.values()):
            raise NoIdentitiesError("Aucune identité à apparier (rosters students et staff vides)")

        identities = {roster: normalize_identities(raw_rosters[roster]) for roster in ROSTERS}
        indices = {roster: FieldIndex.build(identities[roster]) for roster in ROSTERS}
        full_records = {roster: {r.get("id"): r for r in raw_rosters[roster]} for roster in ROSTERS}

        col_types = classify_columns(
            len(table.headers),
            table.rows,
            indices,
            min_match_fraction=self.min_match_fraction,
        )

        row_matches = [self._match_row(row, col_types, indices) for row in table.rows]

        expected = {
            roster: self._resolve_expected(self.policies[roster].expected, roster, row_matches) for roster in ROSTERS
        }
        logger.info(
            "expected counts resolved",
            students=expected["students"].value,
            staff=expected["staff"].value,
        )

        disqualified: dict[str, dict[Any, Rejection]] = {roster: {} for roster in ROSTERS}
        for roster in ROSTERS:
            if self.policies[roster].unique_once:
                disqualified[roster] = self._find_disqualified(row_matches, roster, full_records[roster])

        matched_rows: list[MatchedRow] = []
        rejected: list[tuple[int, list[Rejection]]] = []
        claimed: dict[str, set[Any]] = {roster: set() for roster in ROSTERS}

        for row_idx, matches in enumerate(row_matches):
            reasons = self._check_row(matches, expected, disqualified)
            if reasons:
                rejected.append((row_idx, reasons))
                continue
            raw_row = table.rows[row_idx]
            matched_rows.append(
                MatchedRow(
                    row_index=row_idx,
                    raw_row=raw_row,
                    data_columns=_data_cells(raw_row, col_types),
                    students=[full_records["students"][i.id] for i in matches["students"]],
                    staff=[full_records["staff"][i.id] for i in matches["staff"]],
                )
            )
            for roster in ROSTERS:
                if self.policies[roster].unique_once:
                    claimed[roster].update(i.id for i in matches[roster])

        scorers = {roster: ConfidenceScorer(identities[roster]) for roster in ROSTERS}
        unmatched_rows: list[UnmatchedRow] = []
        for row_idx, reasons in rejected:
            raw_row = table.rows[row_idx]
            suggestions = {
                roster: [
                    Suggestion(full_records[roster][ident.id], conf)
                    for ident, conf in scorers[roster].rate(raw_row, claimed[roster])
                ]
                for roster in ROSTERS
            }
            unmatched_rows.append(
                UnmatchedRow(
                    row_index=row_idx,
                    raw_row=raw_row,
                    data_columns=_data_cells(raw_row, col_types),
                    reasons=reasons,
                    potential_students=suggestions["students"],
                    potential_staff=suggestions["staff"],
                )
            )

        logger.info("rows resolved", matched=len(matched_rows), unmatched=len(unmatched_rows))

        return MatchReport(
            col_types=col_types,
            data_headers=[h for h, ct in zip(table.headers, col_types) if ct.is_data],
            expected_counts={roster: expected[roster].value for roster in ROSTERS},
            matched_rows=matched_rows,
            unmatched_rows=unmatched_rows,
            table=table,
        )

    def _match_row(
        self,
        row: Sequence[str],
        col_types: list[ColumnType],
        indices: dict[str, FieldIndex],
    ) -> RowMatches:
        """Identités trouvées dans une ligne, dédoublonnées par identifiant."""
        found: dict[str, dict[Any, NormalizedIdentity]] = {roster: {} for roster in ROSTERS}
        for cell, col_type in zip(row, col_types):
            ident = exact_match(col_type, cell, indices)
            if ident is not None:
                found[col_type.kind].setdefault(ident.id, ident)
        return {roster: list(found[roster].values()) for roster in ROSTERS}

    @staticmethod
    def _resolve_expected(
        expected: ExpectedCount,
        roster: str,
        row_matches: list[RowMatches],
    ) -> ExpectedCount:
        """
        Résout "auto" : moyenne arrondie sur les lignes ayant au moins un match
        (tous rosters confondus). Sans telles lignes, nombre inatteignable.
        """
        if not expected.is_auto:
            return expected
        counted = [m for m in row_matches if any(m[r] for r in ROSTERS)]
        if not counted:
            return ExpectedCount(UNREACHABLE_COUNT)
        total = sum(len(m[roster]) for m in counted)
        return ExpectedCount(round_half_up(total / len(counted)))

    @staticmethod
    def _find_disqualified(
        row_matches: list[RowMatches],
        roster: str,
        records: dict[Any, RawIdentity],
    ) -> dict[Any, Rejection]:
        """
        Identités vues plus d'une fois dans le tableau (dans l'ordre des lignes).

        Returns:
            {identifiant: Rejection}
        """
        seen: set[Any] = set()
        disqualified: dict[Any, Rejection] = {}
        for matches in row_matches:
            for ident in matches[roster]:
                if ident.id not in seen:
                    seen.add(ident.id)
                elif ident.id not in disqualified:
                    disqualified[ident.id] = Rejection(
                        code="disqualified",
                        roster=roster,
                        message=(
                            f"{_display_name(records[ident.id], ident)} ({ROSTER_LABELS[roster]}) "
                            "apparaît dans plusieurs lignes"
                        ),
                        identity_id=ident.id,
                    )
        return disqualified

    @staticmethod
    def _check_row(
        matches: RowMatches,
        expected: dict[str, ExpectedCount],
        disqualified: dict[str, dict[Any, Rejection]],
    ) -> list[Rejection]:
        """Toutes les raisons de rejet d'une ligne (liste vide = acceptée)."""
        reasons: list[Rejection] = []
        for roster in ROSTERS:
            for ident in matches[roster]:
                if ident.id in disqualified[roster]:
                    reasons.append(disqualified[roster][ident.id])
        for roster in ROSTERS:
            count = len(matches[roster])
            if not expected[roster].is_satisfied(count):
                reasons.append(
                    Rejection(
                        code="wrong_count",
                        roster=roster,
                        message=(
                            f"{count} {ROSTER_LABELS[roster]}(s) trouvé(s), "
                            f"attendu: {_describe_expected(expected[roster])}"
                        ),
                    )
                )
        return reasons


def _describe_expected(expected: ExpectedCount) -> str:
    if expected.value == UNREACHABLE_COUNT:
        return "aucune ligne de référence"
    return str(expected.value)


def _data_cells(row: Sequence[str], col_types: list[ColumnType]) -> list[str]:
    return [cell for cell, ct in zip(row, col_types) if ct.is_data]


def _display_name(record: RawIdentity, ident: NormalizedIdentity) -> str:
    name = safe_str(record.get("name")).strip()
    return name or ident.display_name()
