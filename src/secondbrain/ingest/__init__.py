"""SecondBrain ingest pipeline — extractors, job coordinator, capture, inbox."""

from secondbrain.ingest.base import Artifact, ArtifactKind, BaseExtractor, ExtractionResult
from secondbrain.ingest.capture import CaptureResult, CaptureService, InlineQueue, JobQueue, NullQueue
from secondbrain.ingest.coordinator import IngestCoordinator, IngestItemNotFoundError, ProcessOutcome
from secondbrain.ingest.extractor import ContentExtractor
from secondbrain.ingest.inbox import ItemStatus, ingest_status, reset_stuck_items

__all__ = [
    "Artifact",
    "ArtifactKind",
    "BaseExtractor",
    "ExtractionResult",
    "CaptureResult",
    "CaptureService",
    "InlineQueue",
    "JobQueue",
    "NullQueue",
    "IngestCoordinator",
    "IngestItemNotFoundError",
    "ProcessOutcome",
    "ContentExtractor",
    "ItemStatus",
    "ingest_status",
    "reset_stuck_items",
]
