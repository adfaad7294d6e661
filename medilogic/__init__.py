"""
MediLogic - rule-based medical triage over an editable fact knowledge base.
"""

from .data_loader import PatientFacts, parse_diagnose_request
from .errors import KnowledgeBaseError, PersistenceError, ValidationError
from .knowledge_base import FactStore, default_snapshot
from .models import Disease, Medication, Snapshot, Symptom
from .normalize import normalize_atom
from .triage_engine import RankedDiagnoses, diagnose

__all__ = [
    "Disease",
    "FactStore",
    "KnowledgeBaseError",
    "Medication",
    "PatientFacts",
    "PersistenceError",
    "RankedDiagnoses",
    "Snapshot",
    "Symptom",
    "ValidationError",
    "default_snapshot",
    "diagnose",
    "normalize_atom",
    "parse_diagnose_request",
]
