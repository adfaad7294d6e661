"""
Fact Text Codec
Parses and writes the line-oriented fact file backing the knowledge base.

Format:
- One fact per line, terminated by "."
- Lines starting with "%" are comments; blank lines are ignored
- Identifiers are atoms, strings are double-quoted with \\" escapes

Relations:
    sintoma(Id).
    enfermedad(Id, "Name", System, Type).
    descripcion_enf(Id, "Text").
    enf_sintoma(EnfId, SymId).
    enf_contra_medicamento(EnfId, MedId).
    medicamento(Id).
    etiqueta_medicamento(MedId, "Label").
    trata(MedId, EnfId).
    contraindicado(MedId, CondAtom).

Any other line is skipped and counted, never an error, so files written by
newer tools still load.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Pattern, Tuple

from .models import Disease, Medication, Snapshot, Symptom
from .normalize import normalize_atom, uniq

logger = logging.getLogger(__name__)

HEADER = [
    "% ======= MediLogic KB (auto-generado) =======",
    "% NO editar a mano; use el panel de administración",
]

_ID = r'([A-Za-z0-9_]+)'
_STR = r'"((?:[^"\\]|\\.)*)"'
_SEP = r',\s*'


def _fact(name: str, *args: str) -> Pattern:
    return re.compile(r'^' + name + r'\(\s*' + _SEP.join(args) + r'\s*\)\.$')


def escape_string(value: str) -> str:
    """Escape backslashes and double quotes for a quoted fact argument."""
    return value.replace("\\", "\\\\").replace('"', '\\"')


def unescape_string(value: str) -> str:
    return re.sub(r'\\(.)', r'\1', value)


# =============================================================================
# PARSING
# =============================================================================

class _Builder:
    """Accumulates facts; the first mention of an id creates its record."""

    def __init__(self):
        self.symptoms: Dict[str, Dict] = {}
        self.diseases: Dict[str, Dict] = {}
        self.medications: Dict[str, Dict] = {}

    def symptom(self, sym_id: str) -> Dict:
        return self.symptoms.setdefault(sym_id, {"id": sym_id})

    def disease(self, dis_id: str) -> Dict:
        return self.diseases.setdefault(dis_id, {
            "id": dis_id, "name": "", "system": "", "type": "",
            "description": "", "symptoms": [], "contra_meds": [],
        })

    def medication(self, med_id: str) -> Dict:
        return self.medications.setdefault(med_id, {
            "id": med_id, "label": "", "treats": [], "contra": [],
        })

    def build(self) -> Snapshot:
        for d in self.diseases.values():
            d["symptoms"] = uniq(d["symptoms"])
            d["contra_meds"] = uniq(d["contra_meds"])
        for m in self.medications.values():
            m["treats"] = uniq(m["treats"])
            m["contra"] = uniq(m["contra"])

        return Snapshot(
            symptoms=tuple(Symptom.from_dict(s) for s in self.symptoms.values()),
            diseases=tuple(Disease.from_dict(d) for d in self.diseases.values()),
            medications=tuple(Medication.from_dict(m) for m in self.medications.values()),
        ).sorted()


def _on_symptom(b: _Builder, sym_id: str) -> None:
    b.symptom(normalize_atom(sym_id))


def _on_disease(b: _Builder, dis_id: str, name: str, system: str, typ: str) -> None:
    d = b.disease(normalize_atom(dis_id))
    d["name"] = unescape_string(name)
    d["system"] = normalize_atom(system)
    d["type"] = normalize_atom(typ)


def _on_description(b: _Builder, dis_id: str, text: str) -> None:
    b.disease(normalize_atom(dis_id))["description"] = unescape_string(text)


def _on_disease_symptom(b: _Builder, dis_id: str, sym_id: str) -> None:
    b.disease(normalize_atom(dis_id))["symptoms"].append(normalize_atom(sym_id))


def _on_disease_contra_med(b: _Builder, dis_id: str, med_id: str) -> None:
    b.disease(normalize_atom(dis_id))["contra_meds"].append(normalize_atom(med_id))


def _on_medication(b: _Builder, med_id: str) -> None:
    b.medication(normalize_atom(med_id))


def _on_medication_label(b: _Builder, med_id: str, label: str) -> None:
    b.medication(normalize_atom(med_id))["label"] = unescape_string(label)


def _on_treats(b: _Builder, med_id: str, dis_id: str) -> None:
    b.medication(normalize_atom(med_id))["treats"].append(normalize_atom(dis_id))


def _on_contraindicated(b: _Builder, med_id: str, cond: str) -> None:
    b.medication(normalize_atom(med_id))["contra"].append(normalize_atom(cond))


FACT_HANDLERS: List[Tuple[Pattern, Callable[..., None]]] = [
    (_fact("sintoma", _ID), _on_symptom),
    (_fact("enfermedad", _ID, _STR, _ID, _ID), _on_disease),
    (_fact("descripcion_enf", _ID, _STR), _on_description),
    (_fact("enf_sintoma", _ID, _ID), _on_disease_symptom),
    (_fact("enf_contra_medicamento", _ID, _ID), _on_disease_contra_med),
    (_fact("medicamento", _ID), _on_medication),
    (_fact("etiqueta_medicamento", _ID, _STR), _on_medication_label),
    (_fact("trata", _ID, _ID), _on_treats),
    (_fact("contraindicado", _ID, _ID), _on_contraindicated),
]


@dataclass
class ParseResult:
    """
    Outcome of parsing fact text.

    Attributes:
        snapshot: Parsed knowledge base, sorted by id
        facts: Number of recognized fact lines
        skipped: Lines that matched no relation (ignored)
    """
    snapshot: Snapshot
    facts: int = 0
    skipped: List[str] = field(default_factory=list)


def fact_lines(text: str) -> List[str]:
    """Split fact text into trimmed lines, dropping blanks and % comments."""
    out = []
    for raw in text.splitlines():
        line = raw.strip()
        if not line or line.startswith("%"):
            continue
        out.append(line)
    return out


def parse_facts(text: str) -> ParseResult:
    """
    Parse fact text into a snapshot.

    Facts may appear in any order: a link mentioning a disease or
    medication before its declaration creates the record, and later facts
    fill it in.

    Args:
        text: Contents of the fact file

    Returns:
        ParseResult with the snapshot and the skipped lines
    """
    builder = _Builder()
    recognized = 0
    skipped = []

    for line in fact_lines(text):
        for pattern, handler in FACT_HANDLERS:
            match = pattern.match(line)
            if match:
                handler(builder, *match.groups())
                recognized += 1
                break
        else:
            logger.debug(f"Skipping unrecognized fact line: {line!r}")
            skipped.append(line)

    if skipped:
        logger.info(f"Ignored {len(skipped)} unrecognized fact line(s)")

    return ParseResult(snapshot=builder.build(), facts=recognized, skipped=skipped)


def parse_snapshot(text: str) -> Snapshot:
    return parse_facts(text).snapshot


# =============================================================================
# SERIALIZATION
# =============================================================================

def serialize_snapshot(snapshot: Snapshot) -> str:
    """
    Write a snapshot as fact text.

    Sections follow a fixed order (symptoms, diseases, descriptions,
    disease symptoms, disease-blocked medications, medications, medication
    labels, treats, contraindications), each sorted by id, so the same
    snapshot always produces the same bytes.
    """
    s = snapshot.sorted()
    a = normalize_atom
    lines = list(HEADER)

    lines.append("")
    for sym in s.symptoms:
        lines.append(f"sintoma({a(sym.id)}).")

    lines.append("")
    for d in s.diseases:
        lines.append(
            f'enfermedad({a(d.id)}, "{escape_string(d.name)}", {a(d.system)}, {a(d.type)}).'
        )
    for d in s.diseases:
        description = d.description.strip()
        if description:
            lines.append(f'descripcion_enf({a(d.id)}, "{escape_string(description)}").')
    for d in s.diseases:
        for sym_id in d.symptom_ids:
            lines.append(f"enf_sintoma({a(d.id)}, {a(sym_id)}).")
    for d in s.diseases:
        for med_id in d.contraindicated_medication_ids:
            lines.append(f"enf_contra_medicamento({a(d.id)}, {a(med_id)}).")

    lines.append("")
    for m in s.medications:
        lines.append(f"medicamento({a(m.id)}).")
    for m in s.medications:
        label = m.label.strip()
        if label:
            lines.append(f'etiqueta_medicamento({a(m.id)}, "{escape_string(label)}").')
    for m in s.medications:
        for dis_id in m.treats:
            lines.append(f"trata({a(m.id)}, {a(dis_id)}).")
    for m in s.medications:
        for cond in m.contraindications:
            lines.append(f"contraindicado({a(m.id)}, {a(cond)}).")

    return "\n".join(lines) + "\n"
