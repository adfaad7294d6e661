"""
Knowledge Base Fact Store
Holds the live knowledge base snapshot and keeps it in sync with the
fact file.

Readers call current() and keep the returned snapshot for as long as they
need it; snapshots are immutable, so a concurrent replace() never tears
what a reader holds. replace() is all-or-nothing: validation, serialization
and the atomic file write all succeed before the in-memory reference is
swapped.
"""

import logging
import threading
from pathlib import Path
from typing import List, Union

from .errors import ValidationError
from .facts import parse_facts, parse_snapshot, serialize_snapshot
from .models import Disease, Medication, Snapshot, Symptom
from .persistence import FactFile
from .validator import validate_snapshot

logger = logging.getLogger(__name__)


def default_snapshot() -> Snapshot:
    """Bootstrap knowledge base used when no fact file exists yet."""
    return Snapshot(
        symptoms=tuple(Symptom(id=s) for s in [
            "cefalea", "disnea", "dolor_garganta", "dolor_pecho", "fiebre", "nausea", "tos",
        ]),
        diseases=(
            Disease(
                id="gripe",
                name="Gripe",
                system="respiratorio",
                type="viral",
                description="Infección respiratoria alta.",
                symptom_ids=("fiebre", "tos", "dolor_garganta"),
            ),
        ),
        medications=(
            Medication(
                id="paracetamol",
                label="Paracetamol",
                treats=("gripe",),
                contraindications=("alergia_paracetamol",),
            ),
        ),
    )


class FactStore:
    """
    Process-wide knowledge base.

    Example:
        store = FactStore("data/medilogic.pl")
        store.load()
        kb = store.current()
        store.replace(new_snapshot)
    """

    def __init__(self, source: Union[str, Path, FactFile]):
        self._file = source if isinstance(source, FactFile) else FactFile(source)
        self._lock = threading.Lock()
        self._snapshot = Snapshot()

    @property
    def path(self) -> Path:
        return self._file.path

    def load(self) -> Snapshot:
        """
        Load the knowledge base from the fact file and make it current.

        Falls back to default_snapshot() when no file is stored. A stored
        file that fails validation is still served, with a warning.

        Returns:
            The loaded snapshot

        Raises:
            PersistenceError: The file exists but cannot be read
        """
        text = self._file.read()

        if text is None:
            logger.info("No stored knowledge base, using built-in default")
            snapshot = default_snapshot()
        else:
            result = parse_facts(text)
            snapshot = result.snapshot
            logger.info(f"Loaded knowledge base from {self.path}: "
                        f"{result.facts} facts, "
                        f"{len(snapshot.symptoms)} symptoms, "
                        f"{len(snapshot.diseases)} diseases, "
                        f"{len(snapshot.medications)} medications")
            try:
                validate_snapshot(snapshot)
            except ValidationError as e:
                logger.warning(f"Stored knowledge base is inconsistent: {e}")

        with self._lock:
            self._snapshot = snapshot
        return snapshot

    def current(self) -> Snapshot:
        """The live snapshot; safe to hold for a whole diagnostic pass."""
        return self._snapshot

    def replace(self, snapshot: Snapshot) -> Snapshot:
        """
        Validate, persist and install a new snapshot.

        Args:
            snapshot: Complete knowledge base as sent by the caller

        Returns:
            The normalized snapshot now current

        Raises:
            ValidationError: The snapshot was rejected; nothing changed
            PersistenceError: The fact file could not be written; nothing changed
        """
        with self._lock:
            try:
                normalized = validate_snapshot(snapshot)
            except ValidationError as e:
                logger.warning(f"Rejected knowledge base snapshot: {e}")
                raise

            self._file.write(serialize_snapshot(normalized))
            self._snapshot = normalized

        logger.info(f"Knowledge base replaced: "
                    f"{len(normalized.symptoms)} symptoms, "
                    f"{len(normalized.diseases)} diseases, "
                    f"{len(normalized.medications)} medications")
        return normalized

    def symptom_catalog(self) -> List[str]:
        """Sorted symptom ids offered to the patient form."""
        return sorted(self.current().symptom_ids())

    def export_text(self) -> str:
        """Canonical fact text of the current snapshot."""
        return serialize_snapshot(self.current())

    def import_text(self, text: str) -> Snapshot:
        """
        Replace the knowledge base with parsed fact text.

        Same guarantees as replace(): invalid text leaves the store as is.
        """
        return self.replace(parse_snapshot(text))
