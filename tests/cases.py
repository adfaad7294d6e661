"""
Test Cases & Validation Suite
Expected triage outcomes against CASES_KB.

Run this to validate the triage engine against expected outputs.
"""

import sys
import os
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from medilogic.models import Disease, Medication, Snapshot, Symptom
from medilogic.triage_engine import URGENCY_CONSULT, URGENCY_IMMEDIATE, URGENCY_OBSERVATION

CASES_KB = Snapshot(
    symptoms=tuple(Symptom(id=s) for s in [
        "cefalea", "disnea", "dolor_abdominal", "dolor_garganta", "dolor_pecho",
        "fiebre", "nausea", "tos", "vomito",
    ]),
    diseases=(
        Disease(
            id="gastroenteritis", name="Gastroenteritis", system="digestivo", type="viral",
            symptom_ids=("nausea", "vomito", "dolor_abdominal", "fiebre"),
        ),
        Disease(
            id="gripe", name="Gripe", system="respiratorio", type="viral",
            symptom_ids=("fiebre", "tos", "dolor_garganta"),
            contraindicated_medication_ids=("aspirina",),
        ),
        Disease(
            id="neumonia", name="Neumonía", system="respiratorio", type="bacteriano",
            symptom_ids=("fiebre", "tos", "disnea", "dolor_pecho"),
        ),
    ),
    medications=(
        Medication(id="amoxicilina", label="Amoxicilina", treats=("neumonia",),
                   contraindications=("alergia_penicilina",)),
        Medication(id="aspirina", label="Aspirina", treats=("gripe",),
                   contraindications=("ulcera_gastrica",)),
        Medication(id="ibuprofeno", label="Ibuprofeno", treats=("gripe", "gastroenteritis"),
                   contraindications=("ulcera_gastrica", "alergia_aines")),
        Medication(id="paracetamol", label="Paracetamol", treats=("gripe",),
                   contraindications=("alergia_paracetamol",)),
    ),
)

TEST_CASES = [
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
            "suggested_drug": "ibuprofeno",
            "alternatives": ["paracetamol"],
            "urgency": URGENCY_CONSULT,
        },
    },
    {
        "id": "case_02",
        "name": "Gripe leve con úlcera gástrica",
        "inputs": {
            "symptoms": [
                {"id": "fiebre", "severity": "leve"},
                {"id": "tos", "severity": "leve"},
            ],
            "chronics": ["Ulcera Gastrica"],
        },
        "expected": {
            "disease": "Gripe",
            "affinity": 22,
            "suggested_drug": "paracetamol",
            "alternatives": [],
            "urgency": URGENCY_OBSERVATION,
        },
    },
    {
        "id": "case_03",
        "name": "Neumonía con disnea moderada",
        "inputs": {
            "symptoms": [
                {"id": "fiebre", "severity": "severo"},
                {"id": "tos", "severity": "moderado"},
                {"id": "disnea", "severity": "moderado"},
            ],
        },
        "expected": {
            "disease": "Neumonía",
            "affinity": 58,
            "suggested_drug": "amoxicilina",
            "urgency": URGENCY_IMMEDIATE,
        },
    },
    {
        "id": "case_04",
        "name": "Disnea leve aislada",
        "inputs": {
            "symptoms": [{"id": "disnea", "severity": "leve"}],
        },
        "expected": {
            "disease": "Neumonía",
            "affinity": 8,
            "urgency": URGENCY_CONSULT,
        },
    },
    {
        "id": "case_05",
        "name": "Gastroenteritis con alergia a AINEs",
        "inputs": {
            "symptoms": [
                {"id": "nausea", "severity": "3"},
                {"id": "vomito", "severity": "3"},
                {"id": "dolor_abdominal", "severity": "2"},
            ],
            "allergies": ["alergia-aines"],
        },
        "expected": {
            "disease": "Gastroenteritis",
            "affinity": 67,
            "suggested_drug": None,
            "alternatives": [],
            "urgency": URGENCY_OBSERVATION,
        },
    },
    {
        "id": "case_06",
        "name": "Síntomas ausentes marcados",
        "inputs": {
            "symptoms": [
                {"id": "fiebre", "severity": "severo", "present": False},
                {"id": "tos", "severity": "severo", "present": False},
            ],
        },
        "expected": {
            "disease": "Gastroenteritis",
            "affinity": 0,
            "matched_symptoms": [],
            "urgency": URGENCY_OBSERVATION,
        },
    },
]
