"""
Triage case suite tests.
"""

import sys
import os
import json
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from medilogic.knowledge_base import default_snapshot
from medilogic.validator import BUILTIN_CASES, load_cases_file, main, validate_cases

from cases import CASES_KB, TEST_CASES


def test_triage_cases_all_pass():
    report = validate_cases(TEST_CASES, CASES_KB, source="tests/cases.py")

    failed = {r.id: r.mismatched_keys for r in report.results if not r.match}
    assert failed == {}
    assert report.total == len(TEST_CASES)
    assert report.accuracy == 100.0
    assert report.pass_rate == f"{len(TEST_CASES)}/{len(TEST_CASES)}"


def test_builtin_cases_match_default_kb():
    report = validate_cases(BUILTIN_CASES, default_snapshot())
    assert report.mismatches == 0


def test_mismatch_is_reported():
    case = dict(TEST_CASES[0], expected={"disease": "Neumonía", "affinity": 100})
    report = validate_cases([case], CASES_KB)

    assert report.mismatches == 1
    assert report.results[0].mismatched_keys == ["disease"]
    assert report.accuracy == 0.0


def test_main_exit_codes(tmp_path):
    assert main([]) == 0

    failing = tmp_path / "cases.json"
    failing.write_text(json.dumps([{
        "id": "x", "name": "wrong", "inputs": {}, "expected": {"disease": "Nada"},
    }]), encoding="utf-8")

    assert load_cases_file(str(failing))[0]["id"] == "x"
    assert main([str(failing)]) == 1
