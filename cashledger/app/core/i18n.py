"""English / Chinese message catalogues and ``Accept-Language`` negotiation.

Catalogues live in ``app/locales/<lang>/messages.json`` and map a message
key to a ``str.format`` template.  Lookups fall back to English, then to the
key itself, so a missing translation never raises.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from functools import lru_cache
from pathlib import Path

logger = logging.getLogger(__name__)

LOCALES_DIR = Path(__file__).resolve().parent.parent / "locales"
DEFAULT_LANGUAGE = "en"
SUPPORTED_LANGUAGES = ("en", "zh")


class _KeepMissing(dict):
    """Leaves ``{name}`` in place when a template names a param nobody passed."""

    def __missing__(self, name: str) -> str:
        return "{" + name + "}"


@lru_cache(maxsize=len(SUPPORTED_LANGUAGES))
def catalogue(lang: str) -> Mapping[str, str]:
    path = LOCALES_DIR / lang / "messages.json"
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        logger.warning("No message catalogue for %r at %s", lang, path)
        return {}


def translate(lang: str, key: str, **params: str) -> str:
    template = catalogue(lang).get(key) or catalogue(DEFAULT_LANGUAGE).get(key)
    if template is None:
        logger.warning("Untranslated message key %s", key)
        return key
    return template.format_map(_KeepMissing(params))


def negotiate(accept_language: str | None) -> str:
    """Pick the supported language an ``Accept-Language`` header prefers most.

    Entries are ranked by their ``q`` weight (default 1, ties keep header
    order); ``q=0`` excludes a language.  Region subtags are ignored, so
    ``zh-CN`` selects ``zh``.
    """
    ranked: list[tuple[float, int, str]] = []
    for position, entry in enumerate((accept_language or "").split(",")):
        tag, _, options = entry.partition(";")
        primary = tag.strip().lower().split("-")[0]
        if primary not in SUPPORTED_LANGUAGES:
            continue
        weight = 1.0
        option = options.strip()
        if option.startswith("q="):
            try:
                weight = float(option[2:])
            except ValueError:
                continue
        if weight > 0:
            ranked.append((-weight, position, primary))
    return min(ranked)[2] if ranked else DEFAULT_LANGUAGE
