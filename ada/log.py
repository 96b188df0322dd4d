# ada/log.py
# Journalisation (fichier journalier + stderr)
from __future__ import annotations

import logging
import sys
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path

LOG_FORMAT = "[%(asctime)s] %(levelname)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# niveaux PSR-3 de l'ancienne config → niveaux logging
_LEVEL_ALIASES = {
    "emergency": logging.CRITICAL,
    "alert": logging.CRITICAL,
    "critical": logging.CRITICAL,
    "error": logging.ERROR,
    "warning": logging.WARNING,
    "notice": logging.INFO,
    "info": logging.INFO,
    "debug": logging.DEBUG,
}


def parse_level(level) -> int:
    if isinstance(level, int):
        return level
    return _LEVEL_ALIASES.get(str(level or "info").strip().lower(), logging.INFO)


def configure_logging(name: str = "ada", path=None, level="info", max_files: int = 30,
                      stream: bool = True) -> logging.Logger:
    """
    Configure le logger `name`. Rappeler la fonction remplace les handlers
    installés précédemment (pas de doublons en tests).
    """
    logger = logging.getLogger(name)
    logger.setLevel(parse_level(level))

    for handler in list(logger.handlers):
        if getattr(handler, "_ada_handler", False):
            logger.removeHandler(handler)
            handler.close()

    formatter = logging.Formatter(LOG_FORMAT, DATE_FORMAT)

    if path:
        p = Path(path)
        try:
            p.parent.mkdir(parents=True, exist_ok=True)
            file_handler = TimedRotatingFileHandler(
                p, when="midnight", backupCount=max_files, encoding="utf-8", delay=True
            )
            file_handler.setFormatter(formatter)
            file_handler._ada_handler = True
            logger.addHandler(file_handler)
        except OSError as e:
            logger.warning("Impossible d'ouvrir le journal %s : %s", p, e)

    if stream:
        stream_handler = logging.StreamHandler(sys.stderr)
        stream_handler.setFormatter(formatter)
        stream_handler._ada_handler = True
        logger.addHandler(stream_handler)

    return logger
