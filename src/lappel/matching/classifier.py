"""Détection du type des colonnes (données ou champ d'un roster)."""

from __future__ import annotations

from typing import Mapping, Sequence

import structlog

from lappel.matching.index import FieldIndex, Owned
from lappel.matching.schema import DATA_COLUMN, ROSTERS, ColumnType
from lappel.normalize import norm_cell

logger = structlog.get_logger()

DEFAULT_MIN_MATCH_FRACTION = 0.4


def score_column(cells: Sequence[str], index: FieldIndex, field_name: str) -> int:
    """Nombre de cellules correspondant à une identité unique pour ce champ."""
    return sum(1 for cell in cells if isinstance(index.lookup(field_name, cell), Owned))


def classify_column(
    cells: Sequence[str],
    indices: Mapping[str, FieldIndex],
    *,
    min_match_fraction: float = DEFAULT_MIN_MATCH_FRACTION,
) -> tuple[ColumnType, int]:
    """
    Classe une colonne à partir de ses cellules.

    Chaque couple (roster, champ) est noté par le nombre de cellules qui
    correspondent exactement à une identité non ambiguë. Le meilleur couple
    l'emporte (égalités : ordre des rosters puis des champs). Il n'est retenu
    que si son score atteint `min_match_fraction` des cellules non vides.

    Returns:
        (ColumnType, meilleur score)
    """
    best: ColumnType = DATA_COLUMN
    best_score = 0
    for roster in ROSTERS:
        index = indices.get(roster)
        if index is None or len(index) == 0:
            continue
        for field_name in index.fields:
            score = score_column(cells, index, field_name)
            if score > best_score:
                best = ColumnType(roster, field_name)
                best_score = score

    non_empty = sum(1 for cell in cells if norm_cell(cell))
    if best_score == 0 or best_score < min_match_fraction * non_empty:
        return DATA_COLUMN, best_score
    return best, best_score


def classify_columns(
    n_columns: int,
    rows: Sequence[Sequence[str]],
    indices: Mapping[str, FieldIndex],
    *,
    min_match_fraction: float = DEFAULT_MIN_MATCH_FRACTION,
) -> list[ColumnType]:
    """
    Classe toutes les colonnes d'un tableau, une seule fois par tableau.

    Args:
        n_columns: Nombre de colonnes (longueur des en-têtes).
        rows: Lignes du tableau (toutes de longueur n_columns).
        indices: {roster: FieldIndex}.
        min_match_fraction: Part minimale de cellules non vides reconnues.

    Returns:
        Liste de ColumnType alignée sur les en-têtes.
    """
    col_types: list[ColumnType] = []
    for col_idx in range(n_columns):
        cells = [row[col_idx] for row in rows]
        col_type, score = classify_column(cells, indices, min_match_fraction=min_match_fraction)
        logger.debug(
            "column classified",
            column=col_idx,
            kind=col_type.kind,
            field=col_type.field,
            score=score,
        )
        col_types.append(col_type)
    return col_types
