"""Module de matching et linkage."""

from lappel.matching.linker import Linker
from lappel.matching.schema import ColumnType, MatchedRow, MatchReport, Suggestion, Table, UnmatchedRow

__all__ = ["Linker", "ColumnType", "MatchedRow", "MatchReport", "Suggestion", "Table", "UnmatchedRow"]
