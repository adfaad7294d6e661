"""
Data Loader Module
Turns raw patient requests into the normalized facts the triage engine
works with.

Patient input comes from an open-ended form, so anomalies (unknown
severities, unknown symptom ids, stray types) are normalized, not rejected.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, Iterable, List, Tuple

from .normalize import normalize_atom, severity_weight

logger = logging.getLogger(__name__)


# =============================================================================
# PATIENT FACTS
# =============================================================================

@dataclass(frozen=True)
class PatientFacts:
    """
    Facts asserted by one triage request.

    Attributes:
        present_symptoms: (symptom atom, weight 1-3) pairs, one per symptom
        allergies: Allergy atoms
        chronics: Chronic condition atoms
    """
    present_symptoms: Tuple[Tuple[str, int], ...] = ()
    allergies: FrozenSet[str] = frozenset()
    chronics: FrozenSet[str] = frozenset()

    @classmethod
    def build(
        cls,
        symptoms: Iterable[Tuple[str, Any]] = (),
        allergies: Iterable[str] = (),
        chronics: Iterable[str] = (),
    ) -> "PatientFacts":
        """
        Normalize raw (id, severity) pairs and condition tokens.

        When a symptom is reported more than once the highest weight wins.

        Examples:
            >>> PatientFacts.build([("Fiebre", "severo")], ["Nuts-Allergy"]).allergies
            frozenset({'nuts_allergy'})
        """
        weights: Dict[str, int] = {}
        for sym_id, severity in symptoms:
            atom = normalize_atom(sym_id)
            weights[atom] = max(weights.get(atom, 0), severity_weight(severity))

        return cls(
            present_symptoms=tuple(weights.items()),
            allergies=frozenset(normalize_atom(a) for a in allergies),
            chronics=frozenset(normalize_atom(c) for c in chronics),
        )

    def weights(self) -> Dict[str, int]:
        return dict(self.present_symptoms)

    @property
    def blocked_conditions(self) -> FrozenSet[str]:
        """Allergies and chronic conditions together."""
        return self.allergies | self.chronics


def _as_list(value: Any) -> List[Any]:
    if value is None:
        return []
    if isinstance(value, (list, tuple, set, frozenset)):
        return list(value)
    return [value]


def _is_present(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() not in ("false", "0", "no", "")
    return bool(value)


def parse_diagnose_request(data: Dict[str, Any]) -> PatientFacts:
    """
    Parse a diagnose request body into PatientFacts.

    Expected Structure:
        {
          "symptoms": [{"id": "fiebre", "severity": "severo", "present": true}],
          "allergies": ["alergia_paracetamol"],
          "chronics": ["asma"]
        }

    Handled Variations:
    - "present" missing -> treated as present
    - "present": false -> entry ignored
    - Plain string entries in "symptoms" -> present at severity leve
    - Missing or null lists -> empty

    Args:
        data: Decoded request body

    Returns:
        Normalized PatientFacts
    """
    data = data or {}
    pairs = []

    for entry in _as_list(data.get("symptoms")):
        if isinstance(entry, dict):
            if not _is_present(entry.get("present", True)):
                continue
            if not str(entry.get("id") or "").strip():
                logger.warning(f"Symptom entry without id ignored: {entry}")
                continue
            pairs.append((entry["id"], entry.get("severity")))
        elif isinstance(entry, str) and entry.strip():
            pairs.append((entry, None))
        else:
            logger.warning(f"Unexpected symptom entry type: {type(entry)}, ignoring")

    allergies = [a for a in _as_list(data.get("allergies")) if str(a).strip()]
    chronics = [c for c in _as_list(data.get("chronics")) if str(c).strip()]

    return PatientFacts.build(pairs, allergies, chronics)


def split_conditions(text: str) -> List[str]:
    """
    Split a comma or newline separated list typed into a form.

    Examples:
        >>> split_conditions("asma, alergia paracetamol\\n")
        ['asma', 'alergia paracetamol']
    """
    if not text:
        return []
    parts = text.replace("\n", ",").split(",")
    return [p.strip() for p in parts if p.strip()]
