"""LAppel - Rapprochement d'un tableur avec les listes d'étudiants et d'équipe pédagogique."""

from lappel.config import ConfigError, ConfigFileError, LAppelError, NoIdentitiesError
from lappel.io_excel import TableFileError

__all__ = [
    "__version__",
    "LAppelError",
    "ConfigError",
    "ConfigFileError",
    "NoIdentitiesError",
    "TableFileError",
]

__version__ = "0.1.0"
