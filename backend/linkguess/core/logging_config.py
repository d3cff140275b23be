"""Configuration du système de logging centralisé."""

import glob
import logging
import logging.handlers
import os
from datetime import datetime, timedelta
from pathlib import Path
from typing import Optional

from linkguess.core.settings import get_settings


def _rotating_handler(filename: Path, formatter: logging.Formatter) -> logging.Handler:
    """Handler fichier avec rotation quotidienne (suffixe daté)."""
    handler = logging.handlers.TimedRotatingFileHandler(
        filename=filename,
        when="midnight",
        interval=1,
        encoding="utf-8",
    )
    handler.suffix = "%Y-%m-%d"
    handler.setFormatter(formatter)
    return handler


def setup_logging(logs_dir: str | None = None) -> tuple[logging.Logger, logging.Logger]:
    """Configure le système de logging avec rotation quotidienne.

    Description:
        - `linkguess.generic` (INFO+) : transitions de partie, récompenses, propagation
        - `linkguess.errors` (ERROR+) : échecs après retries, propagation en erreur

    Args:
        logs_dir: Répertoire des logs (par défaut `settings.log_dir`).

    Returns:
        tuple: (logger_generic, logger_errors)
    """
    logs_path = Path(logs_dir or get_settings().log_dir)
    logs_path.mkdir(exist_ok=True)

    # Nettoyage des logs anciens (> 30 jours)
    cleanup_old_logs(logs_path)

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    generic_logger = logging.getLogger("linkguess.generic")
    generic_logger.setLevel(logging.INFO)
    if not generic_logger.handlers:  # Éviter les doublons
        generic_logger.addHandler(_rotating_handler(logs_path / "generic.log", formatter))

    error_logger = logging.getLogger("linkguess.errors")
    error_logger.setLevel(logging.ERROR)
    if not error_logger.handlers:
        error_logger.addHandler(_rotating_handler(logs_path / "errors.log", formatter))

    return generic_logger, error_logger


def cleanup_old_logs(logs_dir: Path, retention_days: int = 30) -> None:
    """Supprime les logs rotés plus anciens que `retention_days`.

    Description:
        Les fichiers rotés portent un suffixe `YYYY-MM-DD` (ex. `generic.log.2024-05-01`).
        Les fichiers courants (sans date) ne sont jamais supprimés.
    """
    cutoff_str = (datetime.now() - timedelta(days=retention_days)).strftime("%Y-%m-%d")

    patterns = [
        f"{logs_dir}/generic.log.*",
        f"{logs_dir}/errors.log.*",
    ]

    for pattern in patterns:
        for file_path in glob.glob(pattern):
            date_part = os.path.basename(file_path).rsplit(".", 1)[-1]
            if len(date_part) != 10 or date_part.count("-") != 2:
                continue
            if date_part < cutoff_str:
                try:
                    os.remove(file_path)
                except OSError:
                    continue


# Instance globale (lazy initialization)
_loggers: Optional[tuple[logging.Logger, logging.Logger]] = None


def get_loggers() -> tuple[logging.Logger, logging.Logger]:
    """Retourne les loggers configurés (singleton)."""
    global _loggers
    if _loggers is None:
        _loggers = setup_logging()
    return _loggers
