"""
Diagnostic Triage Engine - Rule-Based Disease Ranking
Scores every disease in the knowledge base against the patient's reported
symptoms, assigns one urgency level for the request, and picks medications
that are not contraindicated.

The engine never mutates the snapshot it is given.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Tuple

from .data_loader import PatientFacts
from .models import Disease, Snapshot
from .normalize import MAX_SEVERITY, normalize_atom

# CRITICAL SYMPTOMS: drive urgency escalation
CRITICAL_SYMPTOMS = frozenset({
    "disnea",
    "dolor_pecho",
})

# Highest affinity at or above this escalates to a consult
CONSULT_AFFINITY = 70

# Moderate or worse on a critical symptom means immediate care
IMMEDIATE_MIN_WEIGHT = 2

# URGENCY LEVELS
URGENCY_OBSERVATION = "Observación recomendada"
URGENCY_CONSULT = "Consulta médica recomendada"
URGENCY_IMMEDIATE = "Atención inmediata"

# Fixed labels of the rules applied to every diagnosis
RULES_FIRED = ("afinidad/3", "urgencia/1", "medicamento_seguro/2")

EXPLANATION = (
    "Diagnóstico basado en reglas: afinidad/3, urgencia/1 y medicamento_seguro/2."
)


@dataclass
class AffinityBreakdown:
    """
    How a disease's affinity was computed.

    Attributes:
        disease_id: Disease scored
        required: Required symptoms (denominator)
        matched: (symptom, weight) pairs that counted
        score: Sum of matched weights
        max_score: 3 * len(required)
        affinity: round(100 * score / max_score), 0 when nothing is required
    """
    disease_id: str
    required: List[str]
    matched: List[Tuple[str, int]]
    score: int
    max_score: int
    affinity: int

    @property
    def matched_symptoms(self) -> List[str]:
        return [sym for sym, _ in self.matched]


@dataclass
class MedicationCheck:
    """
    Safe-medication selection for one disease.

    Attributes:
        disease_id: Disease the medications are for
        candidates: Medications that treat it, in store order
        safe: Candidates that survived filtering
        excluded: (medication, reason) for each filtered candidate
    """
    disease_id: str
    candidates: List[str]
    safe: List[str]
    excluded: List[Tuple[str, str]] = field(default_factory=list)

    @property
    def suggested(self) -> Optional[str]:
        return self.safe[0] if self.safe else None

    @property
    def alternatives(self) -> List[str]:
        return self.safe[1:]


@dataclass
class Diagnosis:
    """One ranked disease in a triage response."""
    disease_id: str
    name: str
    affinity: int
    suggested_drug: Optional[str]
    alternatives: List[str]
    urgency: str
    matched_symptoms: List[str]
    warnings: List[str] = field(default_factory=list)
    rules_fired: List[str] = field(default_factory=lambda: list(RULES_FIRED))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "disease": self.name,
            "disease_id": self.disease_id,
            "affinity": self.affinity,
            "suggested_drug": self.suggested_drug,
            "alternatives": list(self.alternatives),
            "urgency": self.urgency,
            "warnings": list(self.warnings),
            "rules_fired": list(self.rules_fired),
            "matched_symptoms": list(self.matched_symptoms),
        }


@dataclass
class RankedDiagnoses:
    """Diagnoses ordered by affinity, plus the request-wide urgency."""
    diagnoses: List[Diagnosis]
    urgency: str
    explanation: str = EXPLANATION

    def __len__(self) -> int:
        return len(self.diagnoses)

    def __iter__(self):
        return iter(self.diagnoses)

    @property
    def top(self) -> Optional[Diagnosis]:
        return self.diagnoses[0] if self.diagnoses else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "diagnoses": [d.to_dict() for d in self.diagnoses],
            "explanations": self.explanation,
        }


def affinity_percent(score: int, max_score: int) -> int:
    """
    Percentage of the maximum score, rounded half up.

    Examples:
        >>> affinity_percent(5, 9)
        56
        >>> affinity_percent(0, 0)
        0
    """
    if max_score <= 0:
        return 0
    return (200 * score + max_score) // (2 * max_score)


def compute_affinity(disease: Disease, weights: Dict[str, int]) -> AffinityBreakdown:
    """
    Score a disease against the present symptoms.

    Each required symptom contributes its reported weight (1-3), so the
    score rewards both coverage and severity. A disease with no required
    symptoms scores 0.
    """
    required = list(disease.symptom_ids)
    matched = [(sym, weights[sym]) for sym in required if sym in weights]
    score = sum(w for _, w in matched)
    max_score = MAX_SEVERITY * len(required)

    return AffinityBreakdown(
        disease_id=disease.id,
        required=required,
        matched=matched,
        score=score,
        max_score=max_score,
        affinity=affinity_percent(score, max_score),
    )


def compute_urgency(
    weights: Dict[str, int],
    max_affinity: int,
    critical_symptoms: Iterable[str] = CRITICAL_SYMPTOMS,
    consult_affinity: int = CONSULT_AFFINITY,
) -> str:
    """
    Compute the urgency for the whole request.

    Logic:
    1. Critical symptom present at moderate or worse -> immediate
    2. Highest affinity >= consult threshold -> consult
    3. Critical symptom present at any severity -> consult
    4. Otherwise -> observation
    """
    flagged = {normalize_atom(s) for s in critical_symptoms}
    critical = {sym: w for sym, w in weights.items() if sym in flagged}

    if any(w >= IMMEDIATE_MIN_WEIGHT for w in critical.values()):
        return URGENCY_IMMEDIATE

    if max_affinity >= consult_affinity or critical:
        return URGENCY_CONSULT

    return URGENCY_OBSERVATION


def check_medications(disease: Disease, facts: PatientFacts, kb: Snapshot) -> MedicationCheck:
    """
    Select the medications that are safe for a disease and patient.

    A candidate treating the disease is excluded when one of its
    contraindications is among the patient's allergies or chronic
    conditions, or when the disease itself blocks it
    (enf_contra_medicamento). Candidates keep the store's id order.
    """
    blocked = facts.blocked_conditions
    disease_blocks = set(disease.contraindicated_medication_ids)

    candidates = sorted(kb.medications_treating(disease.id), key=lambda m: m.id)
    safe = []
    excluded = []

    for med in candidates:
        conflicts = [c for c in med.contraindications if c in blocked]
        if conflicts:
            excluded.append((med.id, f"contraindicado por {', '.join(conflicts)}"))
        elif disease_blocks and med.id in disease_blocks:
            excluded.append((med.id, f"contraindicado para {disease.id}"))
        else:
            safe.append(med.id)

    return MedicationCheck(
        disease_id=disease.id,
        candidates=[m.id for m in candidates],
        safe=safe,
        excluded=excluded,
    )


def _require_disease(disease_id: str, kb: Snapshot) -> Disease:
    disease = kb.get_disease(normalize_atom(disease_id))
    if disease is None:
        raise KeyError(f"Unknown disease: {disease_id}")
    return disease


def explain_affinity(disease_id: str, facts: PatientFacts, kb: Snapshot) -> AffinityBreakdown:
    """
    Affinity breakdown for one disease.

    Raises:
        KeyError: If the disease is not in the knowledge base
    """
    return compute_affinity(_require_disease(disease_id, kb), facts.weights())


def safe_medications(disease_id: str, facts: PatientFacts, kb: Snapshot) -> MedicationCheck:
    """
    Medication candidates, safe subset and exclusions for one disease.

    Raises:
        KeyError: If the disease is not in the knowledge base
    """
    return check_medications(_require_disease(disease_id, kb), facts, kb)


def diagnose(
    facts: PatientFacts,
    kb: Snapshot,
    critical_symptoms: FrozenSet[str] = CRITICAL_SYMPTOMS,
    consult_affinity: int = CONSULT_AFFINITY,
) -> RankedDiagnoses:
    """
    Main diagnose function.

    Args:
        facts: Patient facts for this request
        kb: Knowledge base snapshot (held for the whole pass)
        critical_symptoms: Symptom atoms that drive urgency
        consult_affinity: Affinity that escalates to a consult

    Returns:
        RankedDiagnoses, highest affinity first; ties keep disease id order.
        Every diagnosis carries the same request-wide urgency.
    """
    weights = facts.weights()

    scored = []
    for disease in sorted(kb.diseases, key=lambda d: d.id):
        breakdown = compute_affinity(disease, weights)
        meds = check_medications(disease, facts, kb)
        scored.append((disease, breakdown, meds))

    max_affinity = max((b.affinity for _, b, _ in scored), default=0)
    urgency = compute_urgency(weights, max_affinity, critical_symptoms, consult_affinity)

    scored.sort(key=lambda row: -row[1].affinity)

    diagnoses = [
        Diagnosis(
            disease_id=disease.id,
            name=disease.name,
            affinity=breakdown.affinity,
            suggested_drug=meds.suggested,
            alternatives=meds.alternatives,
            urgency=urgency,
            matched_symptoms=breakdown.matched_symptoms,
            warnings=[f"{med}: {reason}" for med, reason in meds.excluded],
        )
        for disease, breakdown, meds in scored
    ]

    return RankedDiagnoses(diagnoses=diagnoses, urgency=urgency)
