"""Ingest job coordinator — claim, extract, generate, reconcile, embed.

State machine: PENDING → PROCESSING → {DONE, ERROR}.

The PENDING → PROCESSING transition is a single conditional UPDATE, so that
duplicate or concurrent deliveries of the same job (at-least-once queues,
retries) result in exactly one worker processing it. The others return a
"skipped" outcome, which is not an error. DONE and ERROR are terminal for
automatic triggers; ERROR requires an operator reset.

A PROCESSING item whose claim is older than the staleness window is assumed
to belong to a crashed worker: it is reset to PENDING and claimed again,
once per window.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import structlog

from secondbrain.ai.embedder import EmbeddingGenerator
from secondbrain.ai.generator import GeneratedSection, GenerationResult, InsightGenerator
from secondbrain.db.models import IngestItem, IngestStatus, Insight, SourceKind
from secondbrain.db.repository import Repository
from secondbrain.ingest.base import Artifact
from secondbrain.ingest.extractor import ContentExtractor
from secondbrain.ingest.metadata import (
    SectionRef,
    SectionsMeta,
    StorageMeta,
    UrlMeta,
    dump_meta,
    load_meta,
    source_meta,
)

logger = structlog.get_logger(logger_name=__name__)

DEFAULT_STALE_AFTER_MINUTES = 60


class IngestItemNotFoundError(LookupError):
    """Raised when an ingest item id does not exist (or is not the caller's)."""


@dataclass
class ProcessOutcome:
    """Result of ``IngestCoordinator.process_by_id``.

    Attributes:
        ingest_item_id: The item that was (or was not) processed.
        status: Item status after the call.
        skipped: True when this call did not process the item.
        insight_ids: Insight ids in section order (processed calls only).
        reused: True when at least one existing insight id was kept.
    """

    ingest_item_id: str
    status: IngestStatus
    skipped: bool = False
    insight_ids: list[str] = field(default_factory=list)
    reused: bool = False


def embedding_text(section: GeneratedSection) -> str:
    """Text embedded for a section: takeaway then one bullet per line."""
    return f"{section.takeaway}\n" + "\n".join(section.bullets)


class IngestCoordinator:
    """Drive one ingest item through the pipeline.

    Args:
        repo: Repository bound to this worker's own connection.
        extractor: Content extractor for URLs and uploaded payloads.
        generator: Structured insight generator.
        embedder: Embedding generator.
        stale_after_minutes: Staleness window for PROCESSING recovery.
    """

    def __init__(
        self,
        repo: Repository,
        extractor: ContentExtractor,
        generator: InsightGenerator,
        embedder: EmbeddingGenerator,
        stale_after_minutes: int = DEFAULT_STALE_AFTER_MINUTES,
    ) -> None:
        self._repo = repo
        self._extractor = extractor
        self._generator = generator
        self._embedder = embedder
        self._stale_after_minutes = stale_after_minutes

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    def process_by_id(self, item_id: str) -> ProcessOutcome:
        """Process *item_id* if this call can claim it.

        Returns:
            A skipped outcome carrying the current status when the item is
            terminal, owned by another worker, or freshly PROCESSING;
            otherwise the DONE outcome with the insight ids.

        Raises:
            IngestItemNotFoundError: If the item does not exist.
            Exception: Whatever failed during execution, after the item has
                been moved to ERROR.
        """
        item = self._repo.get_ingest_item(item_id)
        if item is None:
            raise IngestItemNotFoundError(f"Ingest item {item_id} not found")

        if not self._claim(item):
            current = self._repo.get_ingest_item(item_id)
            status = current.status if current else item.status
            logger.info("ingest_skipped", ingest_item_id=item_id, status=status.value)
            return ProcessOutcome(ingest_item_id=item_id, status=status, skipped=True)

        log = logger.bind(ingest_item_id=item_id, user_id=item.user_id)
        log.info("ingest_claimed", kind=item.kind.value)
        try:
            outcome = self._execute(item)
        except Exception:
            self._repo.mark_error(item_id)
            log.exception("ingest_failed")
            raise
        log.info("ingest_done", insights=len(outcome.insight_ids), reused=outcome.reused)
        return outcome

    # ------------------------------------------------------------------
    # Claim
    # ------------------------------------------------------------------

    def _claim(self, item: IngestItem) -> bool:
        """Win the PENDING → PROCESSING transition, recovering stale claims once."""
        if item.status.is_terminal:
            return False
        if self._repo.claim_ingest_item(item.id):
            return True

        current = self._repo.get_ingest_item(item.id)
        if current is None or current.status != IngestStatus.PROCESSING:
            return False
        if not self._repo.reset_stale_claim(item.id, self._stale_after_minutes):
            return False

        logger.warning(
            "stale_claim_recovered",
            ingest_item_id=item.id,
            created_at=current.created_at,
            stale_after_minutes=self._stale_after_minutes,
        )
        return self._repo.claim_ingest_item(item.id)

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def _execute(self, item: IngestItem) -> ProcessOutcome:
        meta = source_meta(load_meta(item.meta))
        content = self._resolve_content(item, meta)

        generated = self._generator.generate(content)
        insights, reused = self._reconcile(item, content, generated)

        sections_meta = SectionsMeta(
            summary=generated.summary,
            fallback=generated.fallback,
            sections=[
                SectionRef(index=i.section_index, title=i.title, insight_id=i.id)
                for i in insights
            ],
            source=meta,
        )
        self._repo.mark_done(item.id, raw_text=content, meta=dump_meta(sections_meta))
        return ProcessOutcome(
            ingest_item_id=item.id,
            status=IngestStatus.DONE,
            insight_ids=[i.id for i in insights],
            reused=reused,
        )

    def _resolve_content(
        self, item: IngestItem, meta: UrlMeta | StorageMeta | None
    ) -> str:
        """Return the text to generate from, extracting it when needed."""
        content = item.raw_text or ""

        if item.kind == SourceKind.URL:
            url = meta.url if isinstance(meta, UrlMeta) else content.strip()
            if url:
                fetched = self._extractor.extract(Artifact.from_url(url)).text
                content = fetched if fetched.strip() else url

        if not content.strip() and isinstance(meta, StorageMeta):
            extracted = self._extractor.extract_from_storage(meta)
            for warning in extracted.warnings:
                logger.warning("extraction_warning", ingest_item_id=item.id, warning=warning)
            if extracted.text.strip():
                content = extracted.text
                self._repo.update_raw_text(item.id, content)

        return content

    def _reconcile(
        self, item: IngestItem, content: str, generated: GenerationResult
    ) -> tuple[list[Insight], bool]:
        """Map generated sections onto the item's insights by section index.

        Existing insights are taken in section order (unindexed ones last);
        the one at position i is updated in place for section i, keeping its
        id. Sections without a counterpart are inserted, and insights left
        over once the new sections are placed are deleted. Tags are fully
        replaced and embeddings regenerated for every surviving insight.
        """
        existing = self._repo.list_insights_for_item(item.id)
        count = len(generated.insights)

        multi = count > 1
        results: list[Insight] = []
        reused = False
        for index, section in enumerate(generated.insights):
            label = section.title if multi else None
            body = section.source_excerpt or content
            current = existing[index] if index < len(existing) else None
            if current is not None:
                current.title = section.title
                current.summary = "\n".join(section.bullets)
                current.takeaway = section.takeaway
                current.content = body
                current.section_label = label
                current.section_index = index
                self._repo.update_insight_section(current)
                insight = current
                reused = True
            else:
                insight = Insight(
                    id="",
                    user_id=item.user_id,
                    title=section.title,
                    summary="\n".join(section.bullets),
                    takeaway=section.takeaway,
                    content=body,
                    ingest_item_id=item.id,
                    section_index=index,
                    section_label=label,
                )
                self._repo.add_insight(insight)

            insight.tags = self._repo.replace_insight_tags(item.user_id, insight.id, section.tags)
            embedding = self._embedder.embed(embedding_text(section))
            self._repo.set_embedding(insight.id, embedding or None)
            if not embedding:
                logger.info("insight_without_embedding", insight_id=insight.id)
            results.append(insight)

        for stale in existing[count:]:
            self._repo.delete_insight(stale.id)

        return results, reused
