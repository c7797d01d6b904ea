"""I/O tableurs : chargement du tableau et des rosters, sauvegarde (Excel, ODS, CSV)."""

from __future__ import annotations

import csv
import json
from pathlib import Path
from typing import Any

import pandas as pd
import structlog

from lappel.config import Config, LAppelError
from lappel.matching.schema import Table
from lappel.normalize import safe_str

logger = structlog.get_logger()

# Formats supportés
SUPPORTED_INPUT_EXTENSIONS = (".xlsx", ".xls", ".ods", ".csv")
ROSTER_EXTENSIONS = (".json", *SUPPORTED_INPUT_EXTENSIONS)


class TableFileError(LAppelError):
    """Erreur de chargement d'un fichier (fichier absent, feuille inexistante, format invalide)."""


def _get_engine(path: Path) -> str | None:
    """Retourne le moteur pandas selon l'extension, ou None pour auto."""
    suffix = path.suffix.lower()
    if suffix == ".xlsx":
        return "openpyxl"
    if suffix == ".xls":
        return "xlrd"
    if suffix in (".ods", ".odt"):
        return "odf"
    return None


def _is_csv(path: Path) -> bool:
    return path.suffix.lower() == ".csv"


def _detect_csv_delimiter(path: Path, encoding: str) -> str | None:
    try:
        with path.open("r", encoding=encoding, errors="replace") as f:
            sample_lines: list[str] = []
            for line in f:
                if line.strip() == "":
                    continue
                sample_lines.append(line)
                if len(sample_lines) >= 5:
                    break
    except OSError:
        return None
    if not sample_lines:
        return None
    sample = "".join(sample_lines)
    try:
        return csv.Sniffer().sniff(sample, delimiters=[",", ";", "\t", "|"]).delimiter
    except csv.Error:
        first = sample_lines[0]
        counts = {d: first.count(d) for d in [",", ";", "\t", "|"]}
        best = max(counts, key=counts.get)  # type: ignore[arg-type]
        return best if counts[best] > 0 else None


def _read_csv(path: Path, *, header: int | None) -> pd.DataFrame:
    """Lit un CSV en texte (utf-8 puis latin-1), lignes trop longues ignorées."""
    last_error: Exception | None = None
    for encoding in ("utf-8", "latin-1"):
        delimiter = _detect_csv_delimiter(path, encoding) or ","
        try:
            return pd.read_csv(
                path,
                dtype=str,
                encoding=encoding,
                header=header,
                sep=delimiter,
                keep_default_na=False,
                skip_blank_lines=True,
                on_bad_lines="skip",
                engine="python",
            )
        except UnicodeDecodeError as e:
            last_error = e
            continue
        except pd.errors.EmptyDataError:
            return pd.DataFrame(dtype=str)
        except Exception as e:
            raise TableFileError(f"Erreur CSV {path}: {e}. Vérifiez le séparateur.") from e
    raise TableFileError(f"Erreur CSV {path}: {last_error}")


def _open_excel(path: Path) -> pd.ExcelFile:
    engine = _get_engine(path)
    try:
        xl = pd.ExcelFile(path, engine=engine) if engine else pd.ExcelFile(path)
    except ImportError as e:
        ext = path.suffix.lower()
        if ext == ".xls":
            raise TableFileError(f"Format .xls requis: pip install xlrd. Détail: {e}") from e
        if ext in (".ods", ".odt"):
            raise TableFileError(f"Format ODS requis: pip install odfpy. Détail: {e}") from e
        raise TableFileError(f"Impossible de lire {path}: {e}") from e
    except Exception as e:
        raise TableFileError(f"Impossible de lire le fichier {path}: {e}") from e
    return xl


def list_sheets(filepath: str | Path) -> list[str]:
    """
    Liste les noms des feuilles d'un fichier tableur.

    Formats supportés : .xlsx, .xls, .ods, .csv (une seule "feuille" pour CSV).

    Raises:
        TableFileError: Si le fichier est absent ou illisible.
    """
    path = Path(filepath)
    if not path.exists():
        raise TableFileError(f"Fichier introuvable: {path}")
    if _is_csv(path):
        return ["(données)"]
    xl = _open_excel(path)
    return [str(s) for s in xl.sheet_names]


def load_sheet(
    filepath: str | Path,
    sheet_name: str | None = None,
    *,
    header_row: int | None = 1,
) -> pd.DataFrame:
    """
    Charge une feuille dans un DataFrame en préservant le texte.

    Args:
        filepath: Chemin vers le fichier.
        sheet_name: Nom de la feuille (None = première). Ignoré pour CSV.
        header_row: Ligne (1-based) des en-têtes, None = pas d'en-têtes.

    Returns:
        DataFrame chargé (toutes les cellules en str).

    Raises:
        TableFileError: Si le fichier est absent, illisible ou si la feuille n'existe pas.
    """
    path = Path(filepath)
    if not path.exists():
        raise TableFileError(f"Fichier introuvable: {path}")

    header = None if header_row is None else max(header_row - 1, 0)
    if _is_csv(path):
        return _read_csv(path, header=header)

    xl = _open_excel(path)
    if sheet_name is None:
        sheet_name = str(xl.sheet_names[0])
    elif sheet_name not in xl.sheet_names:
        sheets = [str(s) for s in xl.sheet_names]
        raise TableFileError(f"Feuille '{sheet_name}' introuvable dans {path}. Feuilles: {', '.join(sheets)}")

    try:
        return pd.read_excel(
            xl,
            sheet_name=sheet_name,
            dtype=str,
            header=header,
        )
    except Exception as e:
        raise TableFileError(f"Erreur feuille '{sheet_name}' dans {path}: {e}") from e


def prepare_table(headers: list[Any], rows: list[list[Any]]) -> Table:
    """
    Construit un Table propre : cellules en texte, lignes vides et lignes
    de longueur différente des en-têtes retirées.
    """
    clean_headers = [safe_str(h) for h in headers]
    kept: list[list[str]] = []
    n_blank = 0
    n_ragged = 0
    for row in rows:
        cells = [safe_str(c) for c in row or []]
        if not any(c.strip() for c in cells):
            n_blank += 1
            continue
        if len(cells) != len(clean_headers):
            n_ragged += 1
            continue
        kept.append(cells)
    if n_blank or n_ragged:
        logger.info("rows dropped", blank=n_blank, wrong_length=n_ragged)
    return Table(headers=clean_headers, rows=kept)


def table_from_dataframe(df: pd.DataFrame) -> Table:
    """Convertit un DataFrame (en-têtes = colonnes) en Table."""
    headers = ["" if str(c).startswith("Unnamed:") else str(c) for c in df.columns]
    rows = df.astype(object).where(pd.notna(df), "").values.tolist()
    return prepare_table(headers, rows)


def load_table(config: Config) -> Table:
    """Charge le tableau à apparier selon la configuration."""
    if not config.table_file:
        raise TableFileError("Aucun tableau indiqué (table_file)")
    df = load_sheet(config.table_file, config.table_sheet, header_row=config.table_header_row)
    table = table_from_dataframe(df)
    logger.debug("table loaded", path=config.table_file, columns=len(table.headers), rows=len(table.rows))
    return table


def load_roster(filepath: str | Path) -> list[dict[str, Any]]:
    """
    Charge un roster : JSON (liste d'objets utilisateur Canvas) ou tableur
    dont les colonnes portent les noms de champs (id, name, sortable_name,
    sis_user_id, login_id, email).

    Les enregistrements sans id sont ignorés.

    Raises:
        TableFileError: Fichier absent, illisible ou de format inattendu.
    """
    path = Path(filepath)
    if not path.exists():
        raise TableFileError(f"Fichier introuvable: {path}")
    if path.suffix.lower() not in ROSTER_EXTENSIONS:
        raise TableFileError(f"Format de roster non supporté: {path.suffix}")

    if path.suffix.lower() == ".json":
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise TableFileError(f"JSON invalide dans {path}: {e}") from e
        except OSError as e:
            raise TableFileError(f"Impossible de lire {path}: {e}") from e
        if not isinstance(data, list) or not all(isinstance(u, dict) for u in data):
            raise TableFileError(f"Roster invalide: {path} doit contenir une liste d'objets JSON")
        records = data
    else:
        df = load_sheet(path)
        df.columns = [str(c).strip().lower() for c in df.columns]
        records = [
            {k: v for k, v in rec.items() if safe_str(v) != ""}
            for rec in df.astype(object).where(pd.notna(df), "").to_dict("records")
        ]

    roster = [r for r in records if safe_str(r.get("id")).strip() != ""]
    logger.debug("roster loaded", path=str(path), identities=len(roster), skipped=len(records) - len(roster))
    return roster


def load_rosters(config: Config) -> tuple[list[dict[str, Any]], list[dict[str, Any]]]:
    """
    Charge les rosters students et staff (chemin vide = roster vide).

    Returns:
        (students, staff)
    """
    students = load_roster(config.students_file) if config.students_file else []
    staff = load_roster(config.staff_file) if config.staff_file else []
    return students, staff


def save_xlsx(
    filepath: str | Path,
    dataframes: dict[str, pd.DataFrame],
    *,
    index: bool = False,
) -> None:
    """
    Sauvegarde plusieurs DataFrames dans un fichier xlsx ou ods (une feuille par DataFrame).

    Args:
        filepath: Chemin de sortie (.xlsx ou .ods).
        dataframes: Dict {nom_feuille: DataFrame}.
    """
    path = Path(filepath)
    suffix = path.suffix.lower()
    if suffix == ".ods":
        engine = "odf"
    elif suffix == ".xlsx":
        engine = "openpyxl"
    else:
        raise TableFileError(f"Format de sortie non supporté: {suffix}")

    with pd.ExcelWriter(path, engine=engine) as writer:
        for sheet_name, df in dataframes.items():
            # Nettoyer le nom de feuille (Excel limite à 31 caractères)
            safe_name = str(sheet_name)[:31]
            df.to_excel(writer, sheet_name=safe_name, index=index)
