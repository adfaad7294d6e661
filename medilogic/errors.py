"""
Knowledge base error types.
"""

from typing import Optional


class KnowledgeBaseError(Exception):
    """Base class for fact store failures."""


class ValidationError(KnowledgeBaseError):
    """
    A snapshot was rejected: dangling reference or missing required field.

    Attributes:
        entity: Offending entity (e.g. "disease gripe")
        relation: Relation or field that failed (e.g. "enf_sintoma")
    """

    def __init__(self, message: str, entity: str = "", relation: str = ""):
        super().__init__(message)
        self.entity = entity
        self.relation = relation


class PersistenceError(KnowledgeBaseError):
    """Writing or renaming the fact file failed."""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path
