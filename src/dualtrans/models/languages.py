"""Language codes, display names and script-range detection heuristics."""

from __future__ import annotations

import re

LANGUAGE_NAMES = {
    "en": "English",
    "zh": "Chinese (Simplified)",
    "ja": "Japanese",
    "ko": "Korean",
    "es": "Spanish",
    "fr": "French",
    "de": "German",
    "ru": "Russian",
    "ar": "Arabic",
    "pt": "Portuguese",
}

DEFAULT_SOURCE_LANG = "en"

# Kana is checked before Han so Japanese text mixing kanji and kana is not
# reported as Chinese.
_SCRIPT_RULES = [
    ("ja", re.compile("[\u3040-\u30ff]")),
    ("zh", re.compile("[\u4e00-\u9fff]")),
    ("ko", re.compile("[\uac00-\ud7af]")),
    ("ru", re.compile("[\u0400-\u04ff]")),
    ("ar", re.compile("[\u0600-\u06ff]")),
]

_HAN_RE = re.compile("[\u4e00-\u9fa5]")


def language_name(code: str | None) -> str:
    """Human readable name for prompts; unknown codes pass through."""
    if not code:
        return "auto"
    return LANGUAGE_NAMES.get(code, code)


def normalize_lang(code: str) -> str:
    """Reduce a BCP-47 tag to its primary subtag (``zh-CN`` -> ``zh``)."""
    if code == "auto":
        return code
    return code.strip().lower().split("-")[0]


def detect_language_heuristic(text: str) -> str | None:
    """Guess the language from Unicode script ranges.

    Returns ``None`` when no non-Latin script matched, i.e. the text is
    ambiguous and a network detector may do better.
    """
    for code, pattern in _SCRIPT_RULES:
        if pattern.search(text):
            return code
    return None


def cjk_ratio_language(text: str, threshold: float = 0.3) -> str:
    """Fallback detector: ``zh`` when Han characters dominate, else ``en``."""
    if not text:
        return DEFAULT_SOURCE_LANG
    han = len(_HAN_RE.findall(text))
    return "zh" if han > len(text) * threshold else DEFAULT_SOURCE_LANG
