"""Match exact par cellule et notes de confiance pour les lignes non appariées."""

from __future__ import annotations

import math
from typing import Any, Collection, Mapping, Sequence

from lappel.matching.index import FieldIndex
from lappel.matching.schema import DESCRIPTIVE_FIELDS, ColumnType, NormalizedIdentity
from lappel.normalize import row_tokens, tokenize


def round_half_up(x: float) -> int:
    """Arrondi au plus proche, .5 vers le haut (round() arrondit au pair)."""
    return int(math.floor(x + 0.5))


def exact_match(
    col_type: ColumnType,
    cell: str,
    indices: Mapping[str, FieldIndex],
) -> NormalizedIdentity | None:
    """
    Retourne l'identité désignée par une cellule, ou None.

    Aucune recherche pour une colonne de données. Une valeur absente de
    l'index ou possédée par plusieurs identités ne donne pas de match.
    """
    if col_type.is_data or col_type.field is None:
        return None
    index = indices.get(col_type.kind)
    if index is None:
        return None
    return index.owner(col_type.field, cell)


def identity_tokens(identity: NormalizedIdentity) -> frozenset[str]:
    """Sac de mots des champs descriptifs d'une identité."""
    words: set[str] = set()
    for field_name in DESCRIPTIVE_FIELDS:
        words |= tokenize(identity.get(field_name))
    return frozenset(words)


def confidence(row_words: Collection[str], identity_words: Collection[str]) -> int:
    """
    Part (0-100) du vocabulaire de l'identité retrouvée dans la ligne.

    Non symétrique : seul le sac de l'identité sert de dénominateur. Un sac
    vide donne 0.
    """
    if not identity_words:
        return 0
    common = sum(1 for w in identity_words if w in row_words)
    return round_half_up(100 * common / len(identity_words))


class ConfidenceScorer:
    """Classe les identités d'un roster par recouvrement de mots avec une ligne."""

    def __init__(self, identities: Sequence[NormalizedIdentity]) -> None:
        self.identities = list(identities)
        # Sacs calculés une fois par exécution, partagés en lecture seule
        self._bags = [identity_tokens(ident) for ident in self.identities]

    def rate(
        self,
        row: Sequence[str],
        exclude_ids: Collection[Any] = (),
    ) -> list[tuple[NormalizedIdentity, int]]:
        """
        Calcule la confiance de chaque identité non exclue pour une ligne.

        Args:
            row: Cellules brutes de la ligne.
            exclude_ids: Identifiants déjà pris par des lignes acceptées.

        Returns:
            [(identité, confiance)] trié par confiance décroissante, ordre du
            roster conservé en cas d'égalité, sans troncature.
        """
        words = row_tokens(list(row))
        ratings = [
            (ident, confidence(words, bag))
            for ident, bag in zip(self.identities, self._bags)
            if ident.id not in exclude_ids
        ]
        ratings.sort(key=lambda r: r[1], reverse=True)
        return ratings
