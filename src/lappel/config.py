"""Configuration et chargement du fichier config JSON."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

EXPECTED_ANY = "any"
EXPECTED_AT_LEAST_ONE = "at-least-one"
EXPECTED_AUTO = "auto"
VALID_EXPECTED_KEYWORDS = frozenset({EXPECTED_ANY, EXPECTED_AT_LEAST_ONE, EXPECTED_AUTO})


class LAppelError(Exception):
    """Exception de base pour LAppel."""


class ConfigError(LAppelError, ValueError):
    """Erreur de validation de la configuration."""


class NoIdentitiesError(ConfigError):
    """Aucune identité dans les deux rosters : rien à apparier."""


class ConfigFileError(LAppelError):
    """Erreur de chargement du fichier de configuration (fichier absent, JSON invalide)."""


@dataclass(frozen=True)
class ExpectedCount:
    """
    Nombre d'identités attendu par ligne pour un roster.

    `value` est un entier >= 0 ou l'un des mots-clés "any", "at-least-one",
    "auto". "auto" doit être résolu en entier par le linker avant usage.
    """

    value: int | str = EXPECTED_AUTO

    @classmethod
    def parse(cls, raw: Any) -> ExpectedCount:
        """
        Valide un spécificateur brut (JSON ou ExpectedCount construit à la main).

        Raises:
            ConfigError: Valeur autre qu'un entier >= 0 ou un mot-clé valide.
        """
        if isinstance(raw, ExpectedCount):
            raw = raw.value
        if isinstance(raw, bool):
            raise ConfigError(f"expected invalide: {raw!r}")
        if isinstance(raw, int):
            if raw < 0:
                raise ConfigError(f"expected doit être >= 0 (got {raw})")
            return cls(raw)
        if isinstance(raw, str):
            text = raw.strip().lower()
            if text in VALID_EXPECTED_KEYWORDS:
                return cls(text)
            if text.isdigit():
                return cls(int(text))
        raise ConfigError(
            f"expected invalide: {raw!r}. Valides: entier >= 0 ou {sorted(VALID_EXPECTED_KEYWORDS)}"
        )

    @property
    def is_auto(self) -> bool:
        return self.value == EXPECTED_AUTO

    def is_satisfied(self, count: int) -> bool:
        """Vérifie un nombre d'identités trouvé dans une ligne."""
        if self.value == EXPECTED_ANY:
            return True
        if self.value == EXPECTED_AT_LEAST_ONE:
            return count > 0
        if self.is_auto:
            raise ConfigError("expected 'auto' doit être résolu avant vérification")
        return count == self.value

    def __str__(self) -> str:
        return str(self.value)


@dataclass
class RosterPolicy:
    """Politique d'appariement pour un roster."""

    unique_once: bool = False  # chaque identité au plus une fois dans le tableau
    expected: ExpectedCount = field(default_factory=ExpectedCount)

    def __post_init__(self) -> None:
        if not isinstance(self.unique_once, bool):
            raise ConfigError(f"unique_once doit être un booléen (got {self.unique_once!r})")
        self.expected = ExpectedCount.parse(self.expected)

    @classmethod
    def from_dict(cls, d: dict[str, Any] | None) -> RosterPolicy:
        d = d or {}
        if not isinstance(d, dict):
            raise ConfigError(f"politique de roster invalide: {d!r} (objet attendu)")
        return cls(
            unique_once=d.get("unique_once", False),
            expected=d.get("expected", EXPECTED_AUTO),
        )


@dataclass
class Config:
    """Configuration principale de LAppel."""

    table_file: str = ""
    table_sheet: str | None = None  # None = première feuille
    table_header_row: int = 1
    students_file: str = ""
    staff_file: str = ""

    students: RosterPolicy = field(default_factory=RosterPolicy)
    staff: RosterPolicy = field(default_factory=RosterPolicy)

    min_match_fraction: float = 0.4
    top_k: int = 3

    def __post_init__(self) -> None:
        if not 0 < self.min_match_fraction <= 1:
            raise ConfigError(f"min_match_fraction doit être dans ]0, 1] (got {self.min_match_fraction})")
        if self.top_k < 1:
            raise ConfigError(f"top_k doit être >= 1 (got {self.top_k})")
        if self.table_header_row < 1:
            raise ConfigError(f"table_header_row doit être >= 1 (got {self.table_header_row})")

    def policy(self, roster: str) -> RosterPolicy:
        """Politique du roster "students" ou "staff"."""
        if roster == "students":
            return self.students
        if roster == "staff":
            return self.staff
        raise ConfigError(f"roster inconnu: {roster!r}")

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> Config:
        table_file = d.get("table_file", "")
        students_file = d.get("students_file", "")
        staff_file = d.get("staff_file", "")

        if not table_file:
            raise ConfigError("table_file requis")
        if not students_file and not staff_file:
            raise ConfigError("students_file ou staff_file requis")

        try:
            min_match_fraction = float(d.get("min_match_fraction", 0.4))
            top_k = int(d.get("top_k", 3))
            table_header_row = int(d.get("table_header_row", 1))
        except (TypeError, ValueError) as e:
            raise ConfigError(f"valeur numérique invalide: {e}") from e

        return cls(
            table_file=table_file,
            table_sheet=d.get("table_sheet"),
            table_header_row=table_header_row,
            students_file=students_file,
            staff_file=staff_file,
            students=RosterPolicy.from_dict(d.get("students")),
            staff=RosterPolicy.from_dict(d.get("staff")),
            min_match_fraction=min_match_fraction,
            top_k=top_k,
        )

    @classmethod
    def load(cls, path: str | Path) -> Config:
        """
        Charge la configuration depuis un fichier JSON.

        Raises:
            ConfigFileError: Si le fichier est absent ou le JSON invalide.
            ConfigError: Si la configuration est invalide.
        """
        path = Path(path).resolve()
        if not path.exists():
            raise ConfigFileError(f"Fichier de configuration introuvable: {path}")

        try:
            with open(path, encoding="utf-8") as f:
                d = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigFileError(f"JSON invalide dans {path}: {e}") from e
        except OSError as e:
            raise ConfigFileError(f"Impossible de lire {path}: {e}") from e

        if not isinstance(d, dict):
            raise ConfigFileError(f"Fichier de configuration invalide: {path} doit contenir un objet JSON")

        config = cls.from_dict(d)
        config.resolve_paths(path.parent)
        return config

    def resolve_paths(self, base_dir: Path) -> None:
        """
        Résout les chemins relatifs par rapport au répertoire de base (ex. dossier du fichier config).

        Modifie table_file, students_file et staff_file en place.
        """
        base = Path(base_dir)
        if self.table_file and not Path(self.table_file).is_absolute():
            self.table_file = str((base / self.table_file).resolve())
        if self.students_file and not Path(self.students_file).is_absolute():
            self.students_file = str((base / self.students_file).resolve())
        if self.staff_file and not Path(self.staff_file).is_absolute():
            self.staff_file = str((base / self.staff_file).resolve())
