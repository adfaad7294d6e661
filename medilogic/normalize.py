"""
Normalization Utilities
Canonicalizes free-form text into the atom alphabet used by the fact store.

Every id, system/type tag and condition token goes through normalize_atom()
on both the write path (snapshot validation) and the read path (patient
facts), so equivalent inputs always compare equal.
"""

import re
from typing import Any, Iterable, List

_UNSAFE = re.compile(r'[^a-z0-9_]+')
_WHITESPACE = re.compile(r'\s+')

# Severity weights: leve / moderado / severo
SEVERITY_WEIGHTS = {
    "leve": 1,
    "moderado": 2,
    "severo": 3,
}
MAX_SEVERITY = 3


def normalize_atom(value: Any) -> str:
    """
    Normalize text into an atom.

    Transformations:
    - Trim and lowercase
    - Spaces and hyphens become underscores
    - Strip every character outside [a-z0-9_]
    - Empty result becomes "x"
    - Prefix "x_" when the first character is not a letter

    Args:
        value: Raw id, tag or condition (None is treated as empty)

    Returns:
        Normalized atom, never empty

    Examples:
        >>> normalize_atom("Dolor de Pecho")
        'dolor_de_pecho'
        >>> normalize_atom("covid-19")
        'covid_19'
        >>> normalize_atom("¡!")
        'x'
        >>> normalize_atom("123abc")
        'x_123abc'
    """
    text = "" if value is None else str(value)
    clean = text.strip().lower()
    clean = clean.replace(" ", "_").replace("-", "_")
    clean = _UNSAFE.sub("", clean)

    if not clean:
        clean = "x"
    if not ("a" <= clean[0] <= "z"):
        clean = "x_" + clean

    return clean


def uniq(items: Iterable[str]) -> List[str]:
    """Drop repeated entries, keeping first-seen order."""
    seen = set()
    out = []
    for item in items:
        if item in seen:
            continue
        seen.add(item)
        out.append(item)
    return out


def collapse_whitespace(value: Any) -> str:
    """
    Trim a display string and collapse internal whitespace.

    Names and descriptions are stored one fact per line, so newlines and
    tabs are folded into single spaces.

    Examples:
        >>> collapse_whitespace("  Infección \\n respiratoria ")
        'Infección respiratoria'
    """
    if value is None:
        return ""
    return _WHITESPACE.sub(" ", str(value)).strip()


def severity_weight(severity: Any) -> int:
    """
    Convert a reported severity into its weight (1-3).

    Accepts "leve"/"moderado"/"severo" (any case) or the numeric
    strings "1".."3". Anything else, including non-ASCII digits such as
    "²", counts as leve.

    Examples:
        >>> severity_weight("Severo")
        3
        >>> severity_weight("2")
        2
        >>> severity_weight("muy fuerte")
        1
    """
    if severity is None:
        return 1

    normalized = str(severity).strip().lower()

    if normalized.isascii() and normalized.isdigit():
        number = int(normalized)
        if 1 <= number <= MAX_SEVERITY:
            return number
        return 1

    return SEVERITY_WEIGHTS.get(normalized, 1)
