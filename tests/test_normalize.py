"""
Atom normalization and severity weighting tests.
"""

import sys
import os
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from medilogic.normalize import collapse_whitespace, normalize_atom, severity_weight, uniq


def test_normalize_lowercases_and_joins_words():
    assert normalize_atom("Dolor de Pecho") == "dolor_de_pecho"
    assert normalize_atom("covid-19") == "covid_19"
    assert normalize_atom("  Fiebre  ") == "fiebre"


def test_normalize_strips_unsafe_characters():
    assert normalize_atom("neumonía") == "neumona"
    assert normalize_atom("a.b(c)") == "abc"


def test_normalize_empty_becomes_x():
    assert normalize_atom("") == "x"
    assert normalize_atom("¡!?") == "x"
    assert normalize_atom(None) == "x"


def test_normalize_forces_leading_letter():
    assert normalize_atom("123abc") == "x_123abc"
    assert normalize_atom("_tos") == "x__tos"


def test_normalize_is_idempotent():
    for raw in ["Dolor de Pecho", "123", "", "x_1", "Alergia-Paracetamol"]:
        once = normalize_atom(raw)
        assert normalize_atom(once) == once


def test_equivalent_inputs_normalize_identically():
    assert normalize_atom("Alergia Paracetamol") == normalize_atom("alergia-paracetamol")


def test_uniq_keeps_first_occurrence_order():
    assert uniq(["b", "a", "b", "c", "a"]) == ["b", "a", "c"]


def test_collapse_whitespace():
    assert collapse_whitespace("  Infección \n respiratoria\talta ") == "Infección respiratoria alta"
    assert collapse_whitespace(None) == ""


def test_severity_words():
    assert severity_weight("leve") == 1
    assert severity_weight("Moderado") == 2
    assert severity_weight(" SEVERO ") == 3


def test_severity_numeric_strings():
    assert severity_weight("1") == 1
    assert severity_weight("2") == 2
    assert severity_weight("3") == 3
    assert severity_weight(3) == 3


def test_severity_malformed_defaults_to_leve():
    assert severity_weight("muy fuerte") == 1
    assert severity_weight("7") == 1
    assert severity_weight("0") == 1
    assert severity_weight("") == 1
    assert severity_weight(None) == 1


def test_severity_non_ascii_digits_default_to_leve():
    assert severity_weight("²") == 1
    assert severity_weight("³") == 1
    assert severity_weight("①") == 1
    assert severity_weight("٣") == 1
