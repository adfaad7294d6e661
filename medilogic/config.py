"""
Configuration
Reads settings from the environment, optionally seeded from a .env file.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import FrozenSet, Optional

from dotenv import load_dotenv

from .normalize import normalize_atom
from .triage_engine import CONSULT_AFFINITY, CRITICAL_SYMPTOMS

logger = logging.getLogger(__name__)

DEFAULT_KB_PATH = Path("data") / "medilogic.pl"


@dataclass(frozen=True)
class Settings:
    """
    Attributes:
        kb_path: Fact file location
        critical_symptoms: Symptom atoms that drive urgency
        consult_affinity: Affinity (0-100) escalating to a consult
        admin_user: Admin page user name
        admin_pass: Admin page password
        log_level: Logging level name
    """
    kb_path: Path = DEFAULT_KB_PATH
    critical_symptoms: FrozenSet[str] = CRITICAL_SYMPTOMS
    consult_affinity: int = CONSULT_AFFINITY
    admin_user: str = "admin"
    admin_pass: str = "123456"
    log_level: str = "INFO"


def _getenv(key: str, default: str) -> str:
    value = os.environ.get(key)
    if value is None or not value.strip():
        return default
    return value.strip()


def parse_symptom_list(value: str) -> FrozenSet[str]:
    """
    Parse a comma-separated symptom list into atoms.

    Examples:
        >>> sorted(parse_symptom_list("Disnea, dolor pecho"))
        ['disnea', 'dolor_pecho']
    """
    return frozenset(normalize_atom(p) for p in value.split(",") if p.strip())


def parse_affinity(value: str, default: int = CONSULT_AFFINITY) -> int:
    """Parse an affinity threshold, clamped to 0-100."""
    try:
        number = int(float(value))
    except (TypeError, ValueError, OverflowError):
        logger.warning(f"Invalid affinity threshold '{value}', using default {default}")
        return default
    return max(0, min(100, number))


def load_settings(env_file: Optional[str] = None) -> Settings:
    """
    Build Settings from environment variables.

    Variables:
    - MEDILOGIC_KB_PATH
    - MEDILOGIC_CRITICAL_SYMPTOMS (comma-separated)
    - MEDILOGIC_CONSULT_AFFINITY
    - ADMIN_USER / ADMIN_PASS
    - MEDILOGIC_LOG_LEVEL

    Values already set in the environment win over the .env file.
    """
    load_dotenv(env_file)

    critical = os.environ.get("MEDILOGIC_CRITICAL_SYMPTOMS")
    return Settings(
        kb_path=Path(_getenv("MEDILOGIC_KB_PATH", str(DEFAULT_KB_PATH))),
        critical_symptoms=parse_symptom_list(critical) if critical is not None else CRITICAL_SYMPTOMS,
        consult_affinity=parse_affinity(_getenv("MEDILOGIC_CONSULT_AFFINITY", str(CONSULT_AFFINITY))),
        admin_user=_getenv("ADMIN_USER", "admin"),
        admin_pass=_getenv("ADMIN_PASS", "123456"),
        log_level=_getenv("MEDILOGIC_LOG_LEVEL", "INFO").upper(),
    )


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
