"""
Validator Module
Normalizes and validates knowledge base snapshots, and checks the triage
engine against a suite of expected-outcome cases.

Snapshot validation enforces referential integrity before anything is
written: every disease symptom, treated disease and blocked medication
must exist in the same snapshot.

Run the case suite with: python -m medilogic.validator [cases.json]
"""

import json
import logging
import sys
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from .data_loader import parse_diagnose_request
from .errors import ValidationError
from .models import Disease, Medication, Snapshot, Symptom
from .normalize import collapse_whitespace, normalize_atom, uniq
from .triage_engine import diagnose

logger = logging.getLogger(__name__)


# =============================================================================
# SNAPSHOT NORMALIZATION & VALIDATION
# =============================================================================

def _blank(value: Any) -> bool:
    return value is None or not str(value).strip()


def _atoms(values: Iterable[str]) -> tuple:
    return tuple(uniq(normalize_atom(v) for v in values))


def _check_text(value: Any, message: str, entity: str, relation: str) -> None:
    """Reject text the UTF-8 fact file cannot hold (lone surrogates)."""
    try:
        str(value).encode("utf-8")
    except UnicodeEncodeError:
        raise ValidationError(f"{message}: texto no codificable en UTF-8", entity=entity, relation=relation)


def normalize_snapshot(snapshot: Snapshot) -> Snapshot:
    """
    Normalize every id, tag and relation list of a snapshot.

    - Ids, system/type tags and relation entries become atoms
    - Relation lists are de-duplicated (first occurrence kept)
    - Disease names, descriptions and medication labels are trimmed to a
      single line
    - Repeated symptom ids collapse into one symptom
    - Collections are ordered by id

    Blank-field checks happen in validate_snapshot() on the raw values,
    since normalize_atom() never returns an empty atom.
    """
    symptoms = {}
    for s in snapshot.symptoms:
        sym_id = normalize_atom(s.id)
        symptoms.setdefault(sym_id, Symptom(id=sym_id))

    diseases = [
        Disease(
            id=normalize_atom(d.id),
            name=collapse_whitespace(d.name),
            system=normalize_atom(d.system),
            type=normalize_atom(d.type),
            description=collapse_whitespace(d.description),
            symptom_ids=_atoms(d.symptom_ids),
            contraindicated_medication_ids=_atoms(d.contraindicated_medication_ids),
        )
        for d in snapshot.diseases
    ]

    medications = [
        Medication(
            id=normalize_atom(m.id),
            label=collapse_whitespace(m.label),
            treats=_atoms(m.treats),
            contraindications=_atoms(m.contraindications),
        )
        for m in snapshot.medications
    ]

    return Snapshot(
        symptoms=tuple(symptoms.values()),
        diseases=tuple(diseases),
        medications=tuple(medications),
    ).sorted()


def _check_required(raw: Snapshot) -> None:
    """Reject blank ids and blank disease fields before normalization hides them."""
    for s in raw.symptoms:
        if _blank(s.id):
            raise ValidationError("síntoma con ID vacío", entity="symptom", relation="sintoma")

    for d in raw.diseases:
        if _blank(d.id):
            raise ValidationError("enfermedad con ID vacío", entity="disease", relation="enfermedad")
        dis_id = normalize_atom(d.id)
        entity = f"disease {dis_id}"
        if _blank(d.name):
            raise ValidationError(f"enfermedad {dis_id}: nombre requerido", entity=entity, relation="name")
        if _blank(d.system):
            raise ValidationError(f"enfermedad {dis_id}: system es requerido", entity=entity, relation="system")
        if _blank(d.type):
            raise ValidationError(f"enfermedad {dis_id}: type es requerido", entity=entity, relation="type")
        _check_text(d.name, f"enfermedad {dis_id}", entity, "name")
        _check_text(d.description, f"enfermedad {dis_id}", entity, "descripcion_enf")

    for m in raw.medications:
        if _blank(m.id):
            raise ValidationError("medicamento con ID vacío", entity="medication", relation="medicamento")
        med_id = normalize_atom(m.id)
        _check_text(m.label, f"medicamento {med_id}", f"medication {med_id}", "etiqueta_medicamento")


def _check_unique(ids: List[str], kind: str, relation: str) -> None:
    seen = set()
    for entity_id in ids:
        if entity_id in seen:
            raise ValidationError(
                f"{relation}({entity_id}) declarado más de una vez",
                entity=f"{kind} {entity_id}",
                relation=relation,
            )
        seen.add(entity_id)


def validate_snapshot(snapshot: Snapshot) -> Snapshot:
    """
    Normalize and validate a snapshot.

    Checks:
    - Symptom, disease and medication ids are non-blank
    - Every disease has a name, system and type
    - Disease and medication ids are unique after normalization
    - enf_sintoma entries reference existing symptoms
    - trata entries reference existing diseases
    - enf_contra_medicamento entries reference existing medications

    Args:
        snapshot: Snapshot as received from a caller

    Returns:
        The normalized snapshot, sorted by id

    Raises:
        ValidationError: First violation found, naming entity and relation
    """
    _check_required(snapshot)
    s = normalize_snapshot(snapshot)

    _check_unique([d.id for d in s.diseases], "disease", "enfermedad")
    _check_unique([m.id for m in s.medications], "medication", "medicamento")

    symptom_ids = set(s.symptom_ids())
    disease_ids = {d.id for d in s.diseases}
    medication_ids = {m.id for m in s.medications}

    for d in s.diseases:
        for sym_id in d.symptom_ids:
            if sym_id not in symptom_ids:
                raise ValidationError(
                    f"enfermedad {d.id}: síntoma '{sym_id}' no existe",
                    entity=f"disease {d.id}",
                    relation="enf_sintoma",
                )

    for m in s.medications:
        for dis_id in m.treats:
            if dis_id not in disease_ids:
                raise ValidationError(
                    f"trata({m.id},{dis_id}): enfermedad no existe",
                    entity=f"medication {m.id}",
                    relation="trata",
                )

    for d in s.diseases:
        for med_id in d.contraindicated_medication_ids:
            if med_id not in medication_ids:
                raise ValidationError(
                    f"enf_contra_medicamento({d.id},{med_id}): medicamento no existe",
                    entity=f"disease {d.id}",
                    relation="enf_contra_medicamento",
                )

    return s


# =============================================================================
# TRIAGE CASE SUITE
# =============================================================================

# Smoke cases for the built-in default knowledge base
BUILTIN_CASES = [
    {
        "id": "case_01",
        "name": "Gripe completa severa",
        "inputs": {
            "symptoms": [
                {"id": "fiebre", "severity": "severo"},
                {"id": "tos", "severity": "severo"},
                {"id": "dolor_garganta", "severity": "severo"},
            ],
        },
        "expected": {
            "disease": "Gripe",
            "affinity": 100,
            "suggested_drug": "paracetamol",
            "urgency": "Consulta médica recomendada",
        },
    },
    {
        "id": "case_02",
        "name": "Alergia al paracetamol",
        "inputs": {
            "symptoms": [{"id": "fiebre", "severity": "moderado"}],
            "allergies": ["Alergia Paracetamol"],
        },
        "expected": {
            "disease": "Gripe",
            "affinity": 22,
            "suggested_drug": None,
            "urgency": "Observación recomendada",
        },
    },
    {
        "id": "case_03",
        "name": "Dolor de pecho moderado",
        "inputs": {
            "symptoms": [{"id": "dolor_pecho", "severity": "moderado"}],
        },
        "expected": {
            "disease": "Gripe",
            "affinity": 0,
            "urgency": "Atención inmediata",
        },
    },
]


@dataclass
class CaseResult:
    """
    Result of a single triage case.

    Attributes:
        id: Case identifier
        name: Case description
        expected: Expected values for the top-ranked diagnosis
        actual: Actual values for the same keys
        match: Whether every expected key matched
    """
    id: str
    name: str
    expected: Dict[str, Any]
    actual: Dict[str, Any]
    match: bool

    @property
    def mismatched_keys(self) -> List[str]:
        return [k for k in self.expected if self.actual.get(k) != self.expected[k]]


@dataclass
class ValidationReport:
    """
    Summary report of a case suite run.

    Attributes:
        source: Where the cases came from
        total: Number of cases
        matches: Cases whose expectations held
        mismatches: Cases that failed
        results: Individual case results
        timestamp: When the suite ran
    """
    source: str
    total: int
    matches: int
    mismatches: int
    results: List[CaseResult]
    timestamp: str = field(default_factory=lambda: datetime.now().isoformat())

    @property
    def accuracy(self) -> float:
        """Calculate accuracy percentage."""
        return (self.matches / self.total * 100) if self.total > 0 else 0.0

    @property
    def pass_rate(self) -> str:
        """Get pass rate as formatted string."""
        return f"{self.matches}/{self.total}"


def _top_diagnosis(result) -> Dict[str, Any]:
    if not result.diagnoses:
        return {"disease": None, "affinity": None, "suggested_drug": None, "urgency": result.urgency}
    top = result.diagnoses[0]
    return {
        "disease": top.name,
        "affinity": top.affinity,
        "suggested_drug": top.suggested_drug,
        "alternatives": top.alternatives,
        "urgency": top.urgency,
        "matched_symptoms": top.matched_symptoms,
    }


def validate_cases(
    cases: List[Dict[str, Any]],
    kb: Snapshot,
    source: str = "cases",
    **engine_options: Any,
) -> ValidationReport:
    """
    Run triage cases through diagnose() and compare the top diagnosis.

    Each case is a dict with "id", "name", "inputs" (a diagnose request in
    the patient JSON shape) and "expected" (any of disease, affinity,
    suggested_drug, alternatives, urgency, matched_symptoms).

    Args:
        cases: Case definitions
        kb: Knowledge base to diagnose against
        source: Label for the report
        engine_options: Passed through to diagnose()

    Returns:
        ValidationReport with per-case results
    """
    logger.info(f"Starting triage case validation ({len(cases)} cases)...")

    results = []
    for idx, case in enumerate(cases, 1):
        facts = parse_diagnose_request(case.get("inputs") or {})
        outcome = _top_diagnosis(diagnose(facts, kb, **engine_options))

        expected = case.get("expected") or {}
        actual = {k: outcome.get(k) for k in expected}
        results.append(CaseResult(
            id=str(case.get("id", idx)),
            name=case.get("name", ""),
            expected=expected,
            actual=actual,
            match=(actual == expected),
        ))

    matches = sum(1 for r in results if r.match)
    logger.info(f"Case validation complete: {matches}/{len(results)} passed")

    return ValidationReport(
        source=source,
        total=len(results),
        matches=matches,
        mismatches=len(results) - matches,
        results=results,
    )


def print_validation_report(report: ValidationReport, show_matches: bool = False) -> None:
    """
    Print formatted validation report to console.

    Args:
        report: ValidationReport to print
        show_matches: Whether to show passing cases (default: False)
    """
    print(f"\n{'=' * 80}")
    print(f"{report.source} Validation Report")
    print(f"{'=' * 80}")
    print(f"Timestamp: {report.timestamp}")
    print(f"Results: {report.pass_rate} ({report.accuracy:.1f}% accuracy)")
    print(f"  Matches: {report.matches}")
    print(f"  Mismatches: {report.mismatches}")

    if report.mismatches > 0:
        print(f"\n{'-' * 80}")
        print("MISMATCHES:")
        print(f"{'-' * 80}")
        for r in report.results:
            if r.match:
                continue
            print(f"\n  {r.id}: {r.name}")
            for key in r.mismatched_keys:
                print(f"      {key}: expected {r.expected[key]!r}, got {r.actual.get(key)!r}")

    if show_matches and report.matches > 0:
        print(f"\n{'-' * 80}")
        print("MATCHES:")
        print(f"{'-' * 80}")
        for r in report.results:
            if r.match:
                print(f"  {r.id}: {r.name}")


def load_cases_file(path: str) -> List[Dict[str, Any]]:
    """
    Load triage cases from a JSON file (a list of case objects).

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the file is not a JSON list
    """
    with open(path, "r", encoding="utf-8") as f:
        raw = json.load(f)
    if not isinstance(raw, list):
        raise ValueError(f"Expected list of cases, got {type(raw)}")
    return raw


def main(argv: Optional[List[str]] = None) -> int:
    from .knowledge_base import default_snapshot

    argv = sys.argv[1:] if argv is None else argv
    logging.basicConfig(level=logging.INFO)

    if argv:
        cases = load_cases_file(argv[0])
        source = argv[0]
    else:
        cases = BUILTIN_CASES
        source = "builtin cases"

    report = validate_cases(cases, default_snapshot(), source=source)
    print_validation_report(report, show_matches=True)
    return 0 if report.mismatches == 0 else 1


# =============================================================================
# MAIN EXECUTION
# =============================================================================

if __name__ == "__main__":
    sys.exit(main())
