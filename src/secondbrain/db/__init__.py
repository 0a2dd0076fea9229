"""SecondBrain database layer."""

from secondbrain.db.connection import Database
from secondbrain.db.migrations import MIGRATIONS, run_migrations
from secondbrain.db.models import IngestItem, IngestStatus, Insight, SourceKind
from secondbrain.db.repository import Repository, normalize_tag_names
from secondbrain.db.schema import initialize
from secondbrain.db.vectors import distance_to_similarity, ensure_dimension, fit_dimension

__all__ = [
    "Database",
    "initialize",
    "run_migrations",
    "MIGRATIONS",
    "IngestItem",
    "IngestStatus",
    "Insight",
    "SourceKind",
    "Repository",
    "normalize_tag_names",
    "distance_to_similarity",
    "ensure_dimension",
    "fit_dimension",
]
