"""Normalisation des rosters : schéma fixe et élimination des champs redondants."""

from __future__ import annotations

from dataclasses import replace
from typing import Sequence

from lappel.matching.schema import DESCRIPTIVE_FIELDS, NormalizedIdentity, RawIdentity
from lappel.normalize import norm_cell


def normalize_identity(record: RawIdentity) -> NormalizedIdentity:
    """Projette un enregistrement brut sur le schéma fixe (minuscules, strip)."""
    return NormalizedIdentity(
        id=record.get("id"),
        **{name: norm_cell(record.get(name)) for name in DESCRIPTIVE_FIELDS},
    )


def find_redundant_field(identities: Sequence[NormalizedIdentity]) -> str | None:
    """
    Cherche une paire de champs ayant la même valeur pour toutes les identités.

    Les paires sont parcourues dans l'ordre de déclaration ; le second champ
    de la première paire trouvée est retourné. L'identifiant n'est jamais
    comparé. Un champ déjà vide partout est ignoré.

    Returns:
        Nom du champ à vider, ou None si aucun doublon.
    """
    if not identities:
        return None

    for i, first in enumerate(DESCRIPTIVE_FIELDS[:-1]):
        for second in DESCRIPTIVE_FIELDS[i + 1 :]:
            if all(ident.get(second) == "" for ident in identities):
                continue
            if all(ident.get(first) == ident.get(second) for ident in identities):
                return second
    return None


def normalize_identities(records: Sequence[RawIdentity] | None) -> list[NormalizedIdentity]:
    """
    Normalise un roster complet.

    Même ordre et même longueur que l'entrée. Les champs qui recopient un
    champ déclaré plus tôt pour tout le roster sont vidés (ils n'apportent
    aucune information pour classer les colonnes).

    Args:
        records: Enregistrements bruts (None ou vide accepté).

    Returns:
        Liste de NormalizedIdentity.
    """
    identities = [normalize_identity(r) for r in records or []]

    while True:
        redundant = find_redundant_field(identities)
        if redundant is None:
            break
        identities = [replace(ident, **{redundant: ""}) for ident in identities]

    return identities
