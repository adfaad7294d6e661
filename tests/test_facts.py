"""
Fact text parsing and serialization tests.
"""

import sys
import os
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from medilogic.facts import parse_facts, parse_snapshot, serialize_snapshot
from medilogic.knowledge_base import default_snapshot
from medilogic.models import Disease, Medication, Snapshot, Symptom
from medilogic.validator import validate_snapshot

SAMPLE = """
% comentario
sintoma(fiebre).
sintoma(tos).

enfermedad(gripe, "Gripe", respiratorio, viral).
descripcion_enf(gripe, "Infección \\"alta\\".").
enf_sintoma(gripe, fiebre).
enf_sintoma(gripe, tos).
enf_sintoma(gripe, fiebre).
enf_contra_medicamento(gripe, aspirina).

medicamento(paracetamol).
medicamento(aspirina).
trata(paracetamol, gripe).
trata(aspirina, gripe).
contraindicado(paracetamol, alergia_paracetamol).
"""


def test_parse_recognizes_every_relation():
    snap = parse_snapshot(SAMPLE)

    assert [s.id for s in snap.symptoms] == ["fiebre", "tos"]
    gripe = snap.get_disease("gripe")
    assert gripe.name == "Gripe"
    assert gripe.system == "respiratorio"
    assert gripe.type == "viral"
    assert gripe.description == 'Infección "alta".'
    assert gripe.symptom_ids == ("fiebre", "tos")
    assert gripe.contraindicated_medication_ids == ("aspirina",)

    assert [m.id for m in snap.medications] == ["aspirina", "paracetamol"]
    paracetamol = snap.medications[1]
    assert paracetamol.treats == ("gripe",)
    assert paracetamol.contraindications == ("alergia_paracetamol",)


def test_parse_ignores_unknown_and_malformed_lines():
    text = SAMPLE + "\nregla(x) :- y(x).\nsintoma(sin_punto)\nfoo bar baz\n"
    result = parse_facts(text)

    assert len(result.skipped) == 3
    assert "sin_punto" not in result.snapshot.symptom_ids()
    assert result.facts == 13


def test_forward_reference_creates_single_record():
    text = """
enf_sintoma(gripe, fiebre).
trata(paracetamol, gripe).
contraindicado(paracetamol, asma).
enfermedad(gripe, "Gripe", respiratorio, viral).
medicamento(paracetamol).
sintoma(fiebre).
"""
    snap = parse_snapshot(text)

    assert len(snap.diseases) == 1
    assert snap.diseases[0].name == "Gripe"
    assert snap.diseases[0].symptom_ids == ("fiebre",)
    assert len(snap.medications) == 1
    assert snap.medications[0].treats == ("gripe",)
    assert snap.medications[0].contraindications == ("asma",)


def test_parse_sorts_collections_by_id():
    text = "sintoma(tos).\nsintoma(cefalea).\nmedicamento(zinc).\nmedicamento(acido).\n"
    snap = parse_snapshot(text)

    assert snap.symptom_ids() == ["cefalea", "tos"]
    assert [m.id for m in snap.medications] == ["acido", "zinc"]


def test_parse_empty_text():
    assert parse_snapshot("") == Snapshot()
    assert parse_snapshot("% solo comentarios\n\n") == Snapshot()


def test_serialize_section_order():
    text = serialize_snapshot(parse_snapshot(SAMPLE))
    lines = [ln for ln in text.splitlines() if ln and not ln.startswith("%")]
    relations = [ln.split("(")[0] for ln in lines]

    order = ["sintoma", "enfermedad", "descripcion_enf", "enf_sintoma",
             "enf_contra_medicamento", "medicamento", "trata", "contraindicado"]
    positions = [order.index(r) for r in relations]
    assert positions == sorted(positions)
    assert lines[0] == "sintoma(fiebre)."
    assert 'enfermedad(gripe, "Gripe", respiratorio, viral).' in lines


def test_serialize_is_deterministic():
    a = serialize_snapshot(default_snapshot())
    b = serialize_snapshot(Snapshot(
        symptoms=tuple(reversed(default_snapshot().symptoms)),
        diseases=default_snapshot().diseases,
        medications=default_snapshot().medications,
    ))
    assert a == b


def test_serialize_skips_blank_description_and_label():
    snap = Snapshot(
        symptoms=(Symptom("fiebre"),),
        diseases=(Disease("gripe", "Gripe", "respiratorio", "viral", symptom_ids=("fiebre",)),),
        medications=(Medication("paracetamol", treats=("gripe",)),),
    )
    text = serialize_snapshot(snap)

    assert "descripcion_enf" not in text
    assert "etiqueta_medicamento" not in text


def test_round_trip_default_snapshot():
    snap = validate_snapshot(default_snapshot())
    assert parse_snapshot(serialize_snapshot(snap)) == snap


def test_round_trip_with_quotes_and_backslashes():
    snap = validate_snapshot(Snapshot(
        symptoms=(Symptom("fiebre"),),
        diseases=(Disease(
            "gripe", 'La "gran" gripe', "respiratorio", "viral",
            description='Ruta C:\\temp y "comillas"', symptom_ids=("fiebre",),
        ),),
        medications=(Medication("paracetamol", label='Para "cetamol"', treats=("gripe",)),),
    ))
    assert parse_snapshot(serialize_snapshot(snap)) == snap


def test_header_comments_are_ignored_on_parse():
    text = serialize_snapshot(default_snapshot())
    assert text.startswith("%")
    assert parse_facts(text).skipped == []


def test_non_ascii_identifiers_are_skipped():
    result = parse_facts("sintoma(niño).\nsintoma(fiebre).\nenf_sintoma(gripe, tós).\n")

    assert result.snapshot.symptom_ids() == ["fiebre"]
    assert result.snapshot.diseases == ()
    assert len(result.skipped) == 2
