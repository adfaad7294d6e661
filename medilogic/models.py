"""
Knowledge Base Models
Immutable records for symptoms, diseases, medications and the snapshot
that groups them.

Snapshots are frozen so a diagnostic session can hold one for its whole
scoring pass while the fact store swaps in a newer one.
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .errors import ValidationError


def _as_tuple(values: Optional[Iterable[Any]]) -> Tuple[str, ...]:
    if not values:
        return ()
    if isinstance(values, str):
        return (values,)
    return tuple(str(v) for v in values)


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def _entries(data: Dict[str, Any], key: str) -> List[Dict[str, Any]]:
    entries = data.get(key) or []
    if not isinstance(entries, list):
        raise ValidationError(f"{key}: se esperaba una lista", entity=key, relation=key)
    for entry in entries:
        if not isinstance(entry, dict):
            raise ValidationError(f"{key}: entrada no es un objeto: {entry!r}", entity=key, relation=key)
    return entries


@dataclass(frozen=True)
class Symptom:
    """
    A symptom the patient can report.

    Attributes:
        id: Symptom atom (e.g. fiebre)
    """
    id: str

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Symptom":
        return cls(id=_text(data.get("id")))


@dataclass(frozen=True)
class Disease:
    """
    A disease and the relations that hang off it.

    Attributes:
        id: Disease atom (e.g. gripe)
        name: Display name (e.g. "Gripe")
        system: Body system tag (respiratorio, digestivo, ...)
        type: Type tag (viral, bacteriano, cronico, ...)
        description: Free text, optional
        symptom_ids: Required symptoms (enf_sintoma)
        contraindicated_medication_ids: Medications blocked for this
            disease (enf_contra_medicamento)
    """
    id: str
    name: str = ""
    system: str = ""
    type: str = ""
    description: str = ""
    symptom_ids: Tuple[str, ...] = ()
    contraindicated_medication_ids: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "system": self.system,
            "type": self.type,
            "description": self.description,
            "symptoms": list(self.symptom_ids),
            "contra_meds": list(self.contraindicated_medication_ids),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Disease":
        return cls(
            id=_text(data.get("id")),
            name=_text(data.get("name")),
            system=_text(data.get("system")),
            type=_text(data.get("type")),
            description=_text(data.get("description")),
            symptom_ids=_as_tuple(data.get("symptoms")),
            contraindicated_medication_ids=_as_tuple(data.get("contra_meds")),
        )


@dataclass(frozen=True)
class Medication:
    """
    A medication, the diseases it treats and its contraindications.

    Attributes:
        id: Medication atom (e.g. paracetamol)
        label: Display label, optional
        treats: Disease ids (trata)
        contraindications: Allergy/chronic condition atoms (contraindicado)
    """
    id: str
    label: str = ""
    treats: Tuple[str, ...] = ()
    contraindications: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "label": self.label,
            "treats": list(self.treats),
            "contra": list(self.contraindications),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Medication":
        return cls(
            id=_text(data.get("id")),
            label=_text(data.get("label")),
            treats=_as_tuple(data.get("treats")),
            contraindications=_as_tuple(data.get("contra")),
        )


@dataclass(frozen=True)
class Snapshot:
    """
    The complete knowledge base, exchanged and replaced as one unit.
    """
    symptoms: Tuple[Symptom, ...] = ()
    diseases: Tuple[Disease, ...] = ()
    medications: Tuple[Medication, ...] = ()

    def to_dict(self) -> Dict[str, List[Dict[str, Any]]]:
        return {
            "symptoms": [s.to_dict() for s in self.symptoms],
            "diseases": [d.to_dict() for d in self.diseases],
            "medications": [m.to_dict() for m in self.medications],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Snapshot":
        """
        Build a snapshot from the admin JSON shape.

        Missing or null collections are read as empty. A relation given
        as a single string is read as a one-element list.

        Raises:
            ValidationError: A collection or one of its entries is not
                the expected JSON type
        """
        data = data or {}
        if not isinstance(data, dict):
            raise ValidationError("snapshot: se esperaba un objeto", entity="snapshot", relation="snapshot")
        return cls(
            symptoms=tuple(Symptom.from_dict(s) for s in _entries(data, "symptoms")),
            diseases=tuple(Disease.from_dict(d) for d in _entries(data, "diseases")),
            medications=tuple(Medication.from_dict(m) for m in _entries(data, "medications")),
        )

    def sorted(self) -> "Snapshot":
        """Return a copy with every collection ordered by id."""
        return Snapshot(
            symptoms=tuple(sorted(self.symptoms, key=lambda s: s.id)),
            diseases=tuple(sorted(self.diseases, key=lambda d: d.id)),
            medications=tuple(sorted(self.medications, key=lambda m: m.id)),
        )

    def symptom_ids(self) -> List[str]:
        return [s.id for s in self.symptoms]

    def get_disease(self, disease_id: str) -> Optional[Disease]:
        for disease in self.diseases:
            if disease.id == disease_id:
                return disease
        return None

    def medications_treating(self, disease_id: str) -> List[Medication]:
        """Medications whose trata/2 facts include the disease, in store order."""
        return [m for m in self.medications if disease_id in m.treats]
