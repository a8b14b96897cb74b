"""Deterministic text cleanup shared by every stage of the intake pipeline.

``normalize_text`` is idempotent: digits are converted before currency tokens
are rewritten, punctuation runs are collapsed before whitespace, and none of
the rewrites produce input that another rewrite would change again.
"""

import re

_ARABIC_DIGITS = str.maketrans("٠١٢٣٤٥٦٧٨٩۰۱۲۳۴۵۶۷۸۹", "01234567890123456789")

# ASCII word boundaries so Latin tokens glued to Arabic letters still match.
_LATIN_CURRENCY_RE = re.compile(r"\b(egp|le|l\.e)\b", re.IGNORECASE | re.ASCII)
# Arabic tokens must stand alone (trailing punctuation allowed); "ج" inside a word is left untouched.
_ARABIC_CURRENCY_RE = re.compile(r"(?<!\S)(جنيه|ج\.?)(?=[\s!?.,،؛]|$)")
_PUNCT_RUN_RE = re.compile(r"[!?.,،؛]{2,}")
_WHITESPACE_RE = re.compile(r"\s+")
_NON_DIGIT_RE = re.compile(r"\D+", re.ASCII)


def arabic_to_western_digits(text: str) -> str:
    """Convert Arabic-Indic and Extended Arabic-Indic digits to 0-9."""
    return text.translate(_ARABIC_DIGITS)


def normalize_currency_tokens(text: str) -> str:
    """Rewrite جنيه, ج, ج., egp, le and l.e (any case) to ``egp``."""
    text = _LATIN_CURRENCY_RE.sub("egp", text)
    return _ARABIC_CURRENCY_RE.sub("egp", text)


def collapse_punctuation(text: str) -> str:
    """Collapse runs of 2+ of ``! ? . , ، ؛`` to the run's first character."""
    return _PUNCT_RUN_RE.sub(lambda match: match.group(0)[0], text)


def collapse_whitespace(text: str) -> str:
    return _WHITESPACE_RE.sub(" ", text).strip()


def normalize_text(text: str) -> str:
    """Normalize free text for classification, extraction and validation.

    Args:
        text: Raw text in Arabic, English or both

    Returns:
        Text with Western digits, a single currency token, collapsed
        punctuation runs and single-spaced words
    """
    if not text:
        return ""
    text = arabic_to_western_digits(text)
    text = collapse_punctuation(text)
    text = normalize_currency_tokens(text)
    return collapse_whitespace(text)


def digits_only(value: str) -> str:
    """Keep only the digits of ``value`` after converting Arabic digits."""
    if not value:
        return ""
    return _NON_DIGIT_RE.sub("", arabic_to_western_digits(value))
