"""Crée un jeu de démonstration pour LAppel (tableau, rosters, config)."""

import json
from pathlib import Path

import pandas as pd

DATA_DIR = Path(__file__).parent / "data"
DATA_DIR.mkdir(exist_ok=True)

students = [
    {"id": 101, "name": "Camille Dupont", "sortable_name": "Dupont, Camille", "sis_user_id": "E2021001", "login_id": "cdupont", "email": "camille.dupont@univ.fr"},
    {"id": 102, "name": "Hugo Martin", "sortable_name": "Martin, Hugo", "sis_user_id": "E2021002", "login_id": "hmartin", "email": "hugo.martin@univ.fr"},
    {"id": 103, "name": "Léa Bernard", "sortable_name": "Bernard, Léa", "sis_user_id": "E2021003", "login_id": "lbernard", "email": "lea.bernard@univ.fr"},
    {"id": 104, "name": "Nathan Leroy", "sortable_name": "Leroy, Nathan", "sis_user_id": "E2021004", "login_id": "nleroy", "email": "nathan.leroy@univ.fr"},
]

staff = pd.DataFrame({
    "id": ["900", "901"],
    "name": ["Sophie Durand", "Marc Petit"],
    "login_id": ["sdurand", "mpetit"],
    "email": ["sophie.durand@univ.fr", "marc.petit@univ.fr"],
})

# Ligne 4 : nom libre, sans identifiant exact. Ligne 5 : doublon de cdupont.
table = pd.DataFrame({
    "Étudiant": ["cdupont", "hmartin", "lbernard", "N. Leroy", "cdupont"],
    "Encadrant": ["sophie.durand@univ.fr", "marc.petit@univ.fr", "sophie.durand@univ.fr", "marc.petit@univ.fr", "marc.petit@univ.fr"],
    "Note": ["15", "12", "17", "11", "9"],
    "Commentaire": ["", "oral à refaire", "", "", "rattrapage"],
})

config = {
    "table_file": "notes.xlsx",
    "students_file": "students.json",
    "staff_file": "staff.csv",
    "students": {"unique_once": True, "expected": "auto"},
    "staff": {"expected": "at-least-one"},
    "top_k": 3,
}

(DATA_DIR / "students.json").write_text(json.dumps(students, ensure_ascii=False, indent=2), encoding="utf-8")
staff.to_csv(DATA_DIR / "staff.csv", index=False)
table.to_excel(DATA_DIR / "notes.xlsx", index=False, engine="openpyxl")
(DATA_DIR / "config.json").write_text(json.dumps(config, indent=2), encoding="utf-8")
print(f"Fichiers créés dans {DATA_DIR}")
print(f"Essayer: lappel run -c {DATA_DIR / 'config.json'} -o {DATA_DIR / 'resultat.xlsx'}")
