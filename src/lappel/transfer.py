"""Transfert des identités résolues vers les feuilles de sortie."""

from __future__ import annotations

from typing import Any, Sequence

import pandas as pd

from lappel.matching.schema import MatchReport, RawIdentity, Suggestion
from lappel.normalize import safe_str

MATCHED_COLUMNS = ("row_index", "student_ids", "student_names", "staff_ids", "staff_names")
UNMATCHED_COLUMNS = ("row_index", "reasons", "potential_students", "potential_staff")


def _ids(identities: Sequence[RawIdentity]) -> str:
    return ", ".join(safe_str(i.get("id")) for i in identities)


def _names(identities: Sequence[RawIdentity]) -> str:
    return ", ".join(safe_str(i.get("name")) for i in identities)


def _format_suggestions(suggestions: list[Suggestion], top_k: int) -> str:
    return ", ".join(
        f"{safe_str(s.identity.get('name')) or safe_str(s.identity.get('id'))} ({s.confidence})"
        for s in suggestions[:top_k]
    )


def _unique_headers(headers: list[str], reserved: Sequence[str] = ()) -> list[str]:
    """
    En-têtes uniques et non vides pour un DataFrame.

    Un en-tête vide devient col_N. Un en-tête déjà pris (par un autre en-tête
    ou par une colonne générée de `reserved`) reçoit un suffixe _1, _2...
    """
    used = set(reserved)
    out: list[str] = []
    for i, h in enumerate(headers):
        base = h or f"col_{i + 1}"
        name = base
        n = 0
        while name in used:
            n += 1
            name = f"{base}_{n}"
        used.add(name)
        out.append(name)
    return out


def build_output_sheets(report: MatchReport, *, top_k: int = 3) -> dict[str, pd.DataFrame]:
    """
    Construit les feuilles de sortie.

    Les colonnes générées gardent leur nom ; une colonne du tableau qui porte
    le même nom est suffixée.

    Args:
        report: Résultat du linker.
        top_k: Nombre de suggestions affichées par roster pour les lignes rejetées.

    Returns:
        {"Matched": ..., "Unmatched": ..., "Columns": ...}
    """
    data_headers = _unique_headers(report.data_headers, MATCHED_COLUMNS)
    all_headers = _unique_headers(report.table.headers, UNMATCHED_COLUMNS)

    matched_records: list[list[Any]] = [
        [
            row.row_index,
            *row.data_columns,
            _ids(row.students),
            _names(row.students),
            _ids(row.staff),
            _names(row.staff),
        ]
        for row in report.matched_rows
    ]
    df_matched = pd.DataFrame(
        matched_records,
        columns=[MATCHED_COLUMNS[0], *data_headers, *MATCHED_COLUMNS[1:]],
    )

    unmatched_records: list[list[Any]] = [
        [
            row.row_index,
            *row.raw_row,
            "; ".join(str(r) for r in row.reasons),
            _format_suggestions(row.potential_students, top_k),
            _format_suggestions(row.potential_staff, top_k),
        ]
        for row in report.unmatched_rows
    ]
    df_unmatched = pd.DataFrame(
        unmatched_records,
        columns=[UNMATCHED_COLUMNS[0], *all_headers, *UNMATCHED_COLUMNS[1:]],
    )

    df_columns = pd.DataFrame(
        [
            {"header": h, "type": ct.kind, "property": ct.label or ""}
            for h, ct in zip(report.table.headers, report.col_types)
        ],
        columns=["header", "type", "property"],
    )

    return {"Matched": df_matched, "Unmatched": df_unmatched, "Columns": df_columns}


def build_mapping_csv(report: MatchReport, output_path: str) -> None:
    """
    Génère mapping.csv avec row_index, status, students, staff, reasons (une ligne par ligne du tableau).
    """
    rows: list[dict[str, Any]] = []
    for m in report.matched_rows:
        rows.append(
            {
                "row_index": m.row_index,
                "status": "matched",
                "students": _ids(m.students),
                "staff": _ids(m.staff),
                "reasons": "",
            }
        )
    for u in report.unmatched_rows:
        rows.append(
            {
                "row_index": u.row_index,
                "status": "unmatched",
                "students": "",
                "staff": "",
                "reasons": "; ".join(str(r) for r in u.reasons),
            }
        )
    rows.sort(key=lambda r: r["row_index"])
    df = pd.DataFrame(rows, columns=["row_index", "status", "students", "staff", "reasons"])
    df.to_csv(output_path, index=False, encoding="utf-8")
