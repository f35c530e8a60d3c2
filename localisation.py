"""UI strings for the side panel and menus, one JSON catalogue per language."""

import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import Dict, List, Tuple

LOCALISATION_DIR = Path(__file__).resolve().parent / "localisation"
STRINGS_FILE = "strings.json"
FALLBACK_LANGUAGE = "en"

_LOGGER = logging.getLogger(__name__)


def _fallback_chain(lang: str, with_fallback: bool = True) -> Tuple[str, ...]:
    """``"fr-CA"`` gives ``("fr_ca", "fr", "en")``: most specific first."""
    code = (lang or "").strip().lower().replace("-", "_")
    chain = []
    if code:
        chain.append(code)
        region_free = code.partition("_")[0]
        if region_free != code:
            chain.append(region_free)
    if with_fallback and FALLBACK_LANGUAGE not in chain:
        chain.append(FALLBACK_LANGUAGE)
    return tuple(chain)


def _catalogue_path(code: str) -> Path:
    return LOCALISATION_DIR / code / STRINGS_FILE


@lru_cache(maxsize=None)
def _read_strings(code: str) -> Dict[str, str]:
    path = _catalogue_path(code)
    if not path.is_file():
        return {}
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        _LOGGER.warning("Ignoring unreadable string catalogue %s (%s)", path, exc)
        return {}
    strings = payload.get("strings") if isinstance(payload, dict) else None
    return dict(strings) if isinstance(strings, dict) else {}


@lru_cache(maxsize=None)
def strings_for(lang: str) -> Dict[str, str]:
    """Every string for ``lang``, filled in from its base language and then English."""
    chain = _fallback_chain(lang)
    table: Dict[str, str] = {}
    for code in reversed(chain):
        table.update(_read_strings(code))

    own = {}
    for code in chain[:-1]:
        own.update(_read_strings(code))
    if own:
        missing = sorted(set(_read_strings(FALLBACK_LANGUAGE)) - set(own))
        if missing:
            _LOGGER.warning("Language %s lacks %d strings: %s", chain[0], len(missing), ", ".join(missing))
    return table


def tr(lang: str, key: str, **fields) -> str:
    """Translate ``key``; unknown keys come back unchanged. ``fields`` fill ``{placeholders}``."""
    text = strings_for(lang).get(key, key)
    return text.format(**fields) if fields else text


def available_languages() -> List[str]:
    codes = sorted(path.parent.name for path in LOCALISATION_DIR.glob(f"*/{STRINGS_FILE}"))
    return codes or [FALLBACK_LANGUAGE]


def resolve_language(lang: str) -> str:
    """The first language in the fallback chain that ships a catalogue."""
    for code in _fallback_chain(lang):
        if _catalogue_path(code).is_file():
            return code
    return FALLBACK_LANGUAGE


def language_display_name(lang: str) -> str:
    # no English fallback here: a language is never listed under another one's name
    chain = _fallback_chain(lang, with_fallback=False)
    for code in chain:
        name = _read_strings(code).get("language_name")
        if name:
            return name
    return chain[0] if chain else FALLBACK_LANGUAGE
