"""Index inverse (champ, valeur) -> identité, avec marquage des ambiguïtés."""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Sequence

from lappel.matching.schema import INDEXED_FIELDS, NormalizedIdentity
from lappel.normalize import norm_cell


class _Ambiguous:
    """Marqueur : valeur possédée par au moins deux identités."""

    _instance: _Ambiguous | None = None

    def __new__(cls) -> _Ambiguous:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "AMBIGUOUS"

    def __bool__(self) -> bool:
        return False


AMBIGUOUS = _Ambiguous()


@dataclass(frozen=True)
class Owned:
    """Valeur possédée par une seule identité."""

    identity: NormalizedIdentity


Slot = Owned | _Ambiguous | None


class FieldIndex:
    """
    Index champ -> valeur (minuscules) -> Owned(identité) ou AMBIGUOUS.

    Construit en une passe puis en lecture seule. Une valeur vue deux fois
    reste AMBIGUOUS définitivement ; elle ne produit jamais de match.
    """

    def __init__(self, entries: dict[str, dict[str, Owned | _Ambiguous]], size: int) -> None:
        self._entries: Mapping[str, Mapping[str, Owned | _Ambiguous]] = MappingProxyType(
            {f: MappingProxyType(values) for f, values in entries.items()}
        )
        self.size = size

    @classmethod
    def build(cls, identities: Sequence[NormalizedIdentity]) -> FieldIndex:
        entries: dict[str, dict[str, Owned | _Ambiguous]] = {}
        for ident in identities:
            for field_name in INDEXED_FIELDS:
                value = ident.get(field_name)
                if not value:
                    continue
                values = entries.setdefault(field_name, {})
                if value in values:
                    values[value] = AMBIGUOUS
                else:
                    values[value] = Owned(ident)
        return cls(entries, len(identities))

    @property
    def fields(self) -> list[str]:
        """Champs présents, dans l'ordre de déclaration."""
        return [f for f in INDEXED_FIELDS if f in self._entries]

    def lookup(self, field_name: str, value: str) -> Slot:
        """Retourne Owned, AMBIGUOUS ou None (jamais vu)."""
        values = self._entries.get(field_name)
        if values is None:
            return None
        return values.get(norm_cell(value))

    def owner(self, field_name: str, value: str) -> NormalizedIdentity | None:
        """Identité propriétaire de la valeur, seulement si elle est unique."""
        slot = self.lookup(field_name, value)
        if isinstance(slot, Owned):
            return slot.identity
        return None

    def __len__(self) -> int:
        return self.size
