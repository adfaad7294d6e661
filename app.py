"""
MediLogic Triage
Streamlit front end over the knowledge base fact store.

Pages:
- Patient Triage: report symptoms, allergies and chronic conditions,
  get ranked diagnoses with safe medications
- Knowledge Base: admin-only view and editing of the fact store
"""

import hmac
import json
from typing import Dict, List

import pandas as pd
import streamlit as st

from medilogic.config import Settings, configure_logging, load_settings
from medilogic.data_loader import PatientFacts, split_conditions
from medilogic.errors import PersistenceError, ValidationError
from medilogic.knowledge_base import FactStore
from medilogic.models import Snapshot
from medilogic.normalize import SEVERITY_WEIGHTS
from medilogic.triage_engine import RankedDiagnoses, diagnose, explain_affinity
from medilogic.validator import BUILTIN_CASES, validate_cases


# =============================================================================
# Page config
# =============================================================================

st.set_page_config(
    page_title="MediLogic Triage",
    page_icon="🩺",
    layout="wide",
    initial_sidebar_state="expanded",
)


# =============================================================================
# Shared resources
# =============================================================================

@st.cache_resource(show_spinner=False)
def get_settings() -> Settings:
    settings = load_settings()
    configure_logging(settings)
    return settings


@st.cache_resource(show_spinner=False)
def get_store(kb_path: str) -> FactStore:
    store = FactStore(kb_path)
    store.load()
    return store


# =============================================================================
# Tables
# =============================================================================

def diseases_frame(kb: Snapshot) -> pd.DataFrame:
    return pd.DataFrame(
        [
            {
                "ID": d.id,
                "Name": d.name,
                "System": d.system,
                "Type": d.type,
                "Symptoms": ", ".join(d.symptom_ids),
                "Blocked meds": ", ".join(d.contraindicated_medication_ids),
                "Description": d.description,
            }
            for d in kb.diseases
        ],
        columns=["ID", "Name", "System", "Type", "Symptoms", "Blocked meds", "Description"],
    )


def medications_frame(kb: Snapshot) -> pd.DataFrame:
    return pd.DataFrame(
        [
            {
                "ID": m.id,
                "Label": m.label,
                "Treats": ", ".join(m.treats),
                "Contraindications": ", ".join(m.contraindications),
            }
            for m in kb.medications
        ],
        columns=["ID", "Label", "Treats", "Contraindications"],
    )


def results_frame(result: RankedDiagnoses) -> pd.DataFrame:
    return pd.DataFrame(
        [
            {
                "Disease": d.name,
                "Affinity": d.affinity,
                "Suggested drug": d.suggested_drug or "-",
                "Alternatives": ", ".join(d.alternatives),
                "Matched symptoms": ", ".join(d.matched_symptoms),
            }
            for d in result
        ],
        columns=["Disease", "Affinity", "Suggested drug", "Alternatives", "Matched symptoms"],
    )


# =============================================================================
# Patient page
# =============================================================================

def render_triage_page(store: FactStore, settings: Settings):
    st.subheader("Patient Triage")

    kb = store.current()
    catalog = store.symptom_catalog()
    if not catalog:
        st.warning("The knowledge base has no symptoms yet.")
        return

    selected: List[str] = st.multiselect("Symptoms", options=catalog)

    severities: Dict[str, str] = {}
    if selected:
        cols = st.columns(min(len(selected), 3))
        for i, sym in enumerate(selected):
            with cols[i % len(cols)]:
                severities[sym] = st.radio(
                    sym,
                    options=list(SEVERITY_WEIGHTS.keys()),
                    horizontal=True,
                    key=f"sev_{sym}",
                )

    left, right = st.columns(2)
    with left:
        allergies = st.text_area("Allergies", placeholder="alergia_paracetamol, ...")
    with right:
        chronics = st.text_area("Chronic conditions", placeholder="asma, diabetes, ...")

    if not st.button("Diagnose", type="primary"):
        return

    facts = PatientFacts.build(
        severities.items(),
        split_conditions(allergies),
        split_conditions(chronics),
    )
    result = diagnose(
        facts,
        kb,
        critical_symptoms=settings.critical_symptoms,
        consult_affinity=settings.consult_affinity,
    )

    if not result.diagnoses:
        st.info("No diseases in the knowledge base.")
        return

    st.markdown(f"### Urgency: {result.urgency}")
    st.dataframe(results_frame(result), use_container_width=True, hide_index=True)

    for d in result:
        with st.expander(f"{d.name} ({d.affinity}%)"):
            breakdown = explain_affinity(d.disease_id, facts, kb)
            st.markdown(f"Score: {breakdown.score} / {breakdown.max_score}")
            st.markdown(f"Required: {', '.join(breakdown.required) or '-'}")
            for warning in d.warnings:
                st.warning(warning)
            st.caption(f"Rules: {', '.join(d.rules_fired)}")

    st.caption(result.explanation)


# =============================================================================
# Admin page
# =============================================================================

def is_admin(settings: Settings) -> bool:
    if st.session_state.get("admin_authenticated"):
        return True

    with st.form("login"):
        user = st.text_input("User")
        password = st.text_input("Password", type="password")
        submitted = st.form_submit_button("Log in")

    if submitted:
        ok = hmac.compare_digest(user, settings.admin_user) and \
            hmac.compare_digest(password, settings.admin_pass)
        if ok:
            st.session_state.admin_authenticated = True
            st.rerun()
        st.error("Invalid credentials")
    return False


def apply_snapshot(store: FactStore, snapshot: Snapshot) -> None:
    try:
        store.replace(snapshot)
    except ValidationError as e:
        st.error(f"Snapshot validation error: {e}")
    except PersistenceError as e:
        st.error(f"Cannot write knowledge base: {e}")
    else:
        st.success("Knowledge base updated")


def render_admin_page(store: FactStore, settings: Settings):
    st.subheader("Knowledge Base")

    if not is_admin(settings):
        return

    kb = store.current()
    st.caption(f"Fact file: {store.path}")

    c1, c2, c3 = st.columns(3)
    c1.metric("Symptoms", len(kb.symptoms))
    c2.metric("Diseases", len(kb.diseases))
    c3.metric("Medications", len(kb.medications))

    with st.expander("Diseases", expanded=True):
        st.dataframe(diseases_frame(kb), use_container_width=True, hide_index=True)
    with st.expander("Medications", expanded=True):
        st.dataframe(medications_frame(kb), use_container_width=True, hide_index=True)
    with st.expander("Symptoms"):
        st.write(", ".join(kb.symptom_ids()))

    st.markdown("### Edit snapshot")
    raw = st.text_area(
        "Snapshot JSON",
        value=json.dumps(kb.to_dict(), indent=2, ensure_ascii=False),
        height=400,
    )
    if st.button("Save snapshot", type="primary"):
        try:
            snapshot = Snapshot.from_dict(json.loads(raw))
        except json.JSONDecodeError as e:
            st.error(f"Invalid JSON: {e}")
        except ValidationError as e:
            st.error(f"Snapshot validation error: {e}")
        else:
            apply_snapshot(store, snapshot)

    st.markdown("### Fact file")
    st.download_button(
        "Export facts",
        data=store.export_text(),
        file_name="medilogic.pl",
        mime="text/plain",
    )
    uploaded = st.file_uploader("Import facts", type=["pl", "txt"])
    if uploaded is not None and st.button("Import"):
        try:
            store.import_text(uploaded.getvalue().decode("utf-8-sig"))
        except ValidationError as e:
            st.error(f"Snapshot validation error: {e}")
        except PersistenceError as e:
            st.error(f"Cannot write knowledge base: {e}")
        except UnicodeDecodeError:
            st.error("Fact file must be UTF-8 text")
        else:
            st.success("Knowledge base imported")

    with st.expander("Validation"):
        if st.button("Run triage cases"):
            report = validate_cases(
                BUILTIN_CASES,
                store.current(),
                source="builtin cases",
                critical_symptoms=settings.critical_symptoms,
                consult_affinity=settings.consult_affinity,
            )
            st.metric("Accuracy", f"{report.accuracy:.1f}%")
            for r in report.results:
                if r.match:
                    st.success(f"{r.id}: {r.name}")
                else:
                    st.error(f"{r.id}: {r.name} ({', '.join(r.mismatched_keys)})")


# =============================================================================
# Main App
# =============================================================================

def main():
    settings = get_settings()
    store = get_store(str(settings.kb_path))

    with st.sidebar:
        st.markdown("### MediLogic")
        view_mode = st.radio(
            "View Mode",
            ["Patient Triage", "Knowledge Base"],
            label_visibility="collapsed",
        )
        st.markdown("---")
        kb = store.current()
        st.caption("**Knowledge Base**")
        st.markdown(f"Diseases: {len(kb.diseases)}")
        st.markdown(f"Medications: {len(kb.medications)}")
        if st.session_state.get("admin_authenticated") and st.button("Log out"):
            st.session_state.admin_authenticated = False
            st.rerun()
        st.markdown("---")
        st.caption("Prototype System | Rule-based triage engine")

    if view_mode == "Patient Triage":
        render_triage_page(store, settings)
    else:
        render_admin_page(store, settings)


if __name__ == "__main__":
    main()
