"""Interface en ligne de commande LAppel."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from lappel import __version__
from lappel.config import Config, LAppelError
from lappel.io_excel import list_sheets, load_rosters, load_table, save_xlsx
from lappel.matching.linker import Linker
from lappel.report import build_report_df, print_report_console
from lappel.transfer import build_mapping_csv, build_output_sheets


def cmd_list_sheets(filepath: str) -> int:
    """Liste les feuilles d'un fichier tableur."""
    sheets = list_sheets(filepath)
    print(f"Feuilles dans {filepath}:")
    for s in sheets:
        print(f"  - {s}")
    return 0


def cmd_run(
    config_path: str,
    output_path: str | None,
    *,
    dry_run: bool = False,
    mapping_path: str | None = None,
) -> int:
    """Exécute le pipeline LAppel."""
    config = Config.load(config_path)
    table = load_table(config)
    students, staff = load_rosters(config)

    linker = Linker(config)
    report = linker.run(table, students, staff)

    # Générer mapping.csv (--mapping prime s'il est fourni)
    map_path = (
        Path(mapping_path)
        if mapping_path
        else (Path(output_path).parent / "mapping.csv" if output_path else Path(config_path).parent / "mapping.csv")
    )
    build_mapping_csv(report, str(map_path))
    print(f"Mapping écrit: {map_path}")

    print_report_console(report, config)

    if dry_run:
        print("Mode dry-run: pas d'écriture du fichier de sortie.")
        return 0

    if not output_path:
        print("Erreur: --output requis en mode non dry-run.")
        return 1

    sheets = build_output_sheets(report, top_k=config.top_k)
    sheets["REPORT"] = build_report_df(report, config)
    save_xlsx(output_path, sheets)
    print(f"Fichier de sortie: {output_path}")

    return 0


def main() -> int:
    parser = argparse.ArgumentParser(
        prog="lappel",
        description="Rapprochement d'un tableur avec les listes d'étudiants et d'équipe pédagogique",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    subparsers = parser.add_subparsers(dest="command", help="Commandes")

    # list-sheets
    p_list = subparsers.add_parser("list-sheets", help="Lister les feuilles d'un tableur")
    p_list.add_argument("file", help="Fichier xlsx, xls, ods ou csv")

    # run
    p_run = subparsers.add_parser("run", help="Exécuter l'appariement")
    p_run.add_argument("--config", "-c", required=True, help="Fichier config JSON")
    p_run.add_argument("--output", "-o", help="Fichier xlsx de sortie")
    p_run.add_argument("--dry-run", action="store_true", help="Ne pas écrire le fichier de sortie")
    p_run.add_argument("--mapping", "-m", help="Chemin pour mapping.csv")

    args = parser.parse_args()

    try:
        if args.command == "list-sheets":
            return cmd_list_sheets(args.file)

        if args.command == "run":
            if not args.dry_run and not args.output:
                parser.error("--output requis sauf en --dry-run")
            return cmd_run(
                args.config,
                args.output,
                dry_run=args.dry_run,
                mapping_path=args.mapping,
            )
    except LAppelError as e:
        print(f"Erreur: {e}")
        return 1

    parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())
