"""Canonical form for theme labels.

Labels arrive from the extraction model with inconsistent casing,
spacing and dangling connectives ("машинное обучение и", "data for").
Both the interest cloud and the matcher compare labels only after
passing them through normalize().
"""

import re

# Trailing connectives and prepositions that carry no topical meaning.
# Russian is the canonical label language; English covers untranslated output.
TRAILING_STOP_WORDS: frozenset[str] = frozenset({
    "и", "или", "для", "в", "на", "с", "по", "от", "к", "из", "о", "об", "про",
    "and", "or", "for", "in", "on", "with", "of", "to", "from", "about",
})

_WHITESPACE_RE = re.compile(r"\s+")


def normalize_for_comparison(raw: str | None) -> str:
    """Trim, lower-case and collapse whitespace. No stop-word handling."""
    if not isinstance(raw, str):
        return ""
    return _WHITESPACE_RE.sub(" ", raw.strip().lower())


def normalize(raw: str | None) -> str:
    """Return the canonical form of a theme label.

    Trailing stop-words are removed repeatedly ("обучение и для" ->
    "обучение"), but a label is never stripped down to nothing: a single
    remaining word is kept even if it is itself a stop-word.

    >>> normalize("  Машинное   Обучение и ")
    'машинное обучение'
    """
    words = normalize_for_comparison(raw).split(" ")
    while len(words) > 1 and words[-1] in TRAILING_STOP_WORDS:
        words.pop()
    return " ".join(words)
