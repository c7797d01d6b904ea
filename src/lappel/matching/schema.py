"""Schémas et types pour le matching."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

# Types de colonnes
COL_DATA = "data"
STUDENTS = "students"
STAFF = "staff"

# Rosters dans l'ordre d'énumération (départage des égalités)
ROSTERS: tuple[str, ...] = (STUDENTS, STAFF)

ROSTER_LABELS = {
    STUDENTS: "étudiant",
    STAFF: "membre de l'équipe pédagogique",
}

# Champs descriptifs, dans l'ordre de déclaration (le premier déclaré l'emporte)
DESCRIPTIVE_FIELDS: tuple[str, ...] = ("name", "sortable_name", "sis_user_id", "login_id", "email")
# Champs indexés : identifiant puis champs descriptifs
INDEXED_FIELDS: tuple[str, ...] = ("id", *DESCRIPTIVE_FIELDS)

# Noms lisibles des champs pour la sortie
FIELD_LABELS = {
    "id": "canvas-id",
    "name": "name",
    "sortable_name": "sortable-name",
    "sis_user_id": "university-id",
    "login_id": "login-id",
    "email": "email",
}

RawIdentity = Mapping[str, Any]


@dataclass(frozen=True)
class NormalizedIdentity:
    """Identité aplatie : identifiant stable + champs en minuscules (vide = absent)."""

    id: Any
    name: str = ""
    sortable_name: str = ""
    sis_user_id: str = ""
    login_id: str = ""
    email: str = ""

    def get(self, field_name: str) -> str:
        """Valeur normalisée d'un champ indexé (l'identifiant est converti en texte)."""
        if field_name == "id":
            return str(self.id).strip().lower() if self.id is not None else ""
        return getattr(self, field_name)

    def display_name(self) -> str:
        return self.name or self.sortable_name or self.login_id or str(self.id)


@dataclass(frozen=True)
class ColumnType:
    """Classification d'une colonne : données ou (roster, champ)."""

    kind: str  # data, students, staff
    field: str | None = None

    @property
    def is_data(self) -> bool:
        return self.kind == COL_DATA

    @property
    def label(self) -> str | None:
        """Nom lisible du champ (ex. "university-id")."""
        return FIELD_LABELS.get(self.field) if self.field else None


DATA_COLUMN = ColumnType(COL_DATA)


@dataclass
class Table:
    """Tableau rectangulaire : en-têtes + lignes de cellules texte."""

    headers: list[str]
    rows: list[list[str]]


@dataclass
class Rejection:
    """Raison de rejet d'une ligne."""

    code: str  # disqualified, wrong_count
    roster: str
    message: str
    identity_id: Any = None

    def __str__(self) -> str:
        return self.message


@dataclass
class Suggestion:
    """Identité candidate pour une ligne non appariée."""

    identity: RawIdentity
    confidence: int  # 0-100

    def __repr__(self) -> str:
        return f"Suggestion(id={self.identity.get('id')!r}, confidence={self.confidence})"


@dataclass
class MatchedRow:
    """Ligne appariée, identités hydratées avec les enregistrements d'origine."""

    row_index: int
    raw_row: list[str]
    data_columns: list[str]
    students: list[RawIdentity] = field(default_factory=list)
    staff: list[RawIdentity] = field(default_factory=list)


@dataclass
class UnmatchedRow:
    """Ligne rejetée, avec raisons et suggestions classées."""

    row_index: int
    raw_row: list[str]
    data_columns: list[str]
    reasons: list[Rejection] = field(default_factory=list)
    potential_students: list[Suggestion] = field(default_factory=list)
    potential_staff: list[Suggestion] = field(default_factory=list)


@dataclass
class MatchReport:
    """Résultat complet d'un passage du linker sur un tableau."""

    col_types: list[ColumnType]
    data_headers: list[str]
    expected_counts: dict[str, int | str]
    matched_rows: list[MatchedRow]
    unmatched_rows: list[UnmatchedRow]
    table: Table
