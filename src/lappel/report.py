"""Génération du rapport et onglet REPORT."""

from __future__ import annotations

from datetime import datetime

import pandas as pd

from lappel import __version__
from lappel.config import Config
from lappel.matching.schema import STAFF, STUDENTS, MatchReport


def _count_reasons(report: MatchReport, code: str) -> int:
    return sum(1 for r in report.unmatched_rows if any(reason.code == code for reason in r.reasons))


def build_report_df(report: MatchReport, config: Config) -> pd.DataFrame:
    """
    Construit le DataFrame pour l'onglet REPORT.

    Contient : nb lignes, nb appariées, nb rejetées (par motif), colonnes
    détectées, nombres attendus résolus, paramètres, horodatage, version.
    """
    n_identity_cols = sum(1 for ct in report.col_types if not ct.is_data)

    rows = [
        ("Metric", "Value"),
        ("nb_rows", len(report.table.rows)),
        ("nb_matched", len(report.matched_rows)),
        ("nb_unmatched", len(report.unmatched_rows)),
        ("nb_disqualified", _count_reasons(report, "disqualified")),
        ("nb_wrong_count", _count_reasons(report, "wrong_count")),
        ("nb_identity_columns", n_identity_cols),
        ("nb_data_columns", len(report.data_headers)),
        ("expected_students", report.expected_counts.get(STUDENTS, "")),
        ("expected_staff", report.expected_counts.get(STAFF, "")),
        ("", ""),
        ("Parameters", ""),
        ("min_match_fraction", config.min_match_fraction),
        ("top_k", config.top_k),
        ("students_unique_once", config.students.unique_once),
        ("students_expected", str(config.students.expected)),
        ("staff_unique_once", config.staff.unique_once),
        ("staff_expected", str(config.staff.expected)),
        ("", ""),
        ("Columns", ""),
    ]
    for header, ct in zip(report.table.headers, report.col_types):
        rows.append((header, ct.kind if ct.is_data else f"{ct.kind}:{ct.label}"))

    rows.extend(
        [
            ("", ""),
            ("timestamp", datetime.now().isoformat()),
            ("version", __version__),
        ]
    )

    return pd.DataFrame(rows, columns=["Key", "Value"])


def print_report_console(report: MatchReport, config: Config) -> None:
    """Affiche un résumé du rapport en console."""
    print("\n=== LAppel Report ===")
    print(f"  Lignes:            {len(report.table.rows)}")
    print(f"  Appariées:         {len(report.matched_rows)}")
    print(f"  Non appariées:     {len(report.unmatched_rows)}")
    print(f"  Disqualifiées:     {_count_reasons(report, 'disqualified')}")
    print(f"  Mauvais nombre:    {_count_reasons(report, 'wrong_count')}")
    print(f"  Étudiants/ligne:   {report.expected_counts.get(STUDENTS, '')}")
    print(f"  Équipe/ligne:      {report.expected_counts.get(STAFF, '')}")
    print("  Colonnes:")
    for header, ct in zip(report.table.headers, report.col_types):
        kind = "données" if ct.is_data else f"{ct.kind} ({ct.label})"
        print(f"    - {header or '(sans titre)'}: {kind}")
    if report.unmatched_rows:
        print(f"  Suggestions (top {config.top_k}) pour la première ligne non appariée:")
        first = report.unmatched_rows[0]
        ranked = sorted(first.potential_students + first.potential_staff, key=lambda s: s.confidence, reverse=True)
        for s in ranked[: config.top_k]:
            print(f"    - {s.identity.get('name', s.identity.get('id'))}: {s.confidence}")
    print(f"  Version:           {__version__}")
    print(f"  Timestamp:         {datetime.now().isoformat()}")
    print("=====================\n")
