"""Normalisation des cellules et des valeurs d'identité."""

from __future__ import annotations

from typing import Any


def _is_missing(s: Any) -> bool:
    return s is None or (isinstance(s, float) and (s != s or s == float("inf")))


def norm_cell(s: str | float | int | None) -> str:
    """
    Normalise une valeur pour la recherche exacte : texte, strip, lower.

    Args:
        s: Valeur de cellule ou de champ (convertie en str si numérique).

    Returns:
        Chaîne normalisée, vide si la valeur est absente ou NaN.
    """
    if _is_missing(s):
        return ""
    return str(s).strip().lower()


def tokenize(s: str | float | int | None) -> set[str]:
    """Sac de mots : tokens uniques en minuscules, séparés par des blancs."""
    return set(norm_cell(s).split())


def row_tokens(cells: list[str]) -> set[str]:
    """Sac de mots de toutes les cellules d'une ligne."""
    words: set[str] = set()
    for cell in cells:
        words |= tokenize(cell)
    return words


def safe_str(val: Any) -> str:
    """Convertit une valeur en chaîne pour affichage/stockage."""
    if _is_missing(val):
        return ""
    return str(val)
