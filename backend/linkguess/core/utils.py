# backend/linkguess/core/utils.py
# Petits helpers transverses : horodatage UTC et normalisation des réponses.

import datetime as dt
import re

_WHITESPACE_RE = re.compile(r"\s+")


def utcnow():
    """Date/heure UTC (timezone-aware).

    Description:
        Retourne `datetime.now(timezone.utc)`. Utilisé pour tous les horodatages persistés
        (tentatives, récompenses, profils).

    Returns:
        datetime.datetime: Timestamp UTC (aware).
    """
    return dt.datetime.now(dt.timezone.utc)


def normalize_answer(text: str | None) -> str:
    """Normaliser une réponse pour la comparaison.

    Description:
        Insensible à la casse (`casefold`) et aux espaces : les blancs en tête/fin sont
        retirés et les blancs internes réduits à un seul espace.

    Args:
        text: Réponse saisie ou réponse attendue.

    Returns:
        str: Forme normalisée (chaîne vide si `None`).
    """
    if not text:
        return ""
    return _WHITESPACE_RE.sub(" ", text).strip().casefold()
