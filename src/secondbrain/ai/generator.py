"""Structured insight generator — raw text to ordered insight sections.

The model is asked for strict JSON; the reply is validated with pydantic.
Anything that cannot be turned into at least one valid section (blank input,
offline backend, provider error, malformed or invalid JSON) resolves to a
deterministic fallback so that ingestion never stalls on generation.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Annotated, Any

import structlog
from pydantic import BaseModel, Field, StringConstraints, ValidationError, model_validator

from secondbrain.ai.backend import AIBackend

logger = structlog.get_logger(logger_name=__name__)

_MAX_BULLETS = 7
_MAX_TAGS = 10
_FALLBACK_TITLE_CHARS = 80
_FALLBACK_TAKEAWAY_CHARS = 140

_SYSTEM_PROMPT = "You distill captured content into concise, accurate insight cards."

_PROMPT = """\
You are an expert knowledge curator. Split the provided CONTENT into one or more \
self-contained sections and convert each into a concise insight card.
Return STRICT JSON matching this schema:
{{
  "summary": string (one sentence describing the whole content),
  "insights": [
    {{
      "title": string (<= 90 characters),
      "bullets": string[3-7],
      "takeaway": string (<= 160 characters),
      "tags": string[3-8],
      "source_excerpt": string (the passage of CONTENT this card covers)
    }}
  ]
}}
Rules:
- Use a single card unless the content clearly covers distinct topics.
- No markdown, quotes, or numbering.
- Tags should be short topical nouns.
- If the text is a URL or lacks context, infer purpose from domain.
- Keep language clear and direct.
{hint}
CONTENT:
\"\"\"
{content}
\"\"\""""


@dataclass
class GeneratedSection:
    """One generated insight card."""

    title: str
    bullets: list[str]
    takeaway: str
    tags: list[str] = field(default_factory=list)
    source_excerpt: str | None = None


@dataclass
class GenerationResult:
    """Ordered sections plus an optional whole-document summary."""

    insights: list[GeneratedSection]
    summary: str | None = None
    fallback: bool = False


FALLBACK_SECTION = GeneratedSection(
    title="Captured Insight",
    bullets=["Review this item to add more detail."],
    takeaway="Insight captured, awaiting refinement.",
    tags=["unsorted"],
)


def fallback_result() -> GenerationResult:
    """Return a fresh copy of the deterministic fallback."""
    return GenerationResult(
        insights=[
            GeneratedSection(
                title=FALLBACK_SECTION.title,
                bullets=list(FALLBACK_SECTION.bullets),
                takeaway=FALLBACK_SECTION.takeaway,
                tags=list(FALLBACK_SECTION.tags),
            )
        ],
        fallback=True,
    )


def local_result(text: str) -> GenerationResult:
    """Cheap offline result derived from the first line and leading characters."""
    result = fallback_result()
    section = result.insights[0]
    first_line = text.split("\n", 1)[0].strip()
    section.title = first_line[:_FALLBACK_TITLE_CHARS] or FALLBACK_SECTION.title
    section.takeaway = text[:_FALLBACK_TAKEAWAY_CHARS] or FALLBACK_SECTION.takeaway
    return result


# ------------------------------------------------------------------
# Response schema
# ------------------------------------------------------------------

_Text = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


class _SectionPayload(BaseModel):
    title: _Text
    bullets: Annotated[list[_Text], Field(min_length=3, max_length=_MAX_BULLETS)]
    takeaway: _Text
    tags: Annotated[list[_Text], Field(max_length=_MAX_TAGS)] = Field(default_factory=list)
    source_excerpt: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _clip_lists(cls, data: Any) -> Any:
        if isinstance(data, dict):
            data = dict(data)
            if isinstance(data.get("bullets"), list):
                data["bullets"] = data["bullets"][:_MAX_BULLETS]
            if isinstance(data.get("tags"), list):
                data["tags"] = data["tags"][:_MAX_TAGS]
            if data.get("tags") is None:
                data.pop("tags", None)
        return data

    def to_section(self) -> GeneratedSection:
        excerpt = (self.source_excerpt or "").strip() or None
        return GeneratedSection(
            title=self.title,
            bullets=list(self.bullets),
            takeaway=self.takeaway,
            tags=list(self.tags),
            source_excerpt=excerpt,
        )


class _ResponsePayload(BaseModel):
    summary: str | None = None
    insights: Annotated[list[_SectionPayload], Field(min_length=1)]

    @model_validator(mode="before")
    @classmethod
    def _accept_single_card(cls, data: Any) -> Any:
        # A bare card {"title", "bullets", ...} is accepted as one section.
        if isinstance(data, dict) and "insights" not in data and "title" in data:
            return {"insights": [data]}
        return data


def parse_response(raw: str) -> GenerationResult:
    """Validate a raw model reply.

    Raises:
        ValueError: If *raw* is not JSON or fails schema validation
            (pydantic.ValidationError is a ValueError).
    """
    payload = _ResponsePayload.model_validate(json.loads(raw))
    summary = (payload.summary or "").strip() or None
    return GenerationResult(
        insights=[s.to_section() for s in payload.insights],
        summary=summary,
    )


class InsightGenerator:
    """Turn extracted text into structured insight sections.

    Args:
        backend: AI capability; ``NullBackend`` selects the local fallback.
        max_input_chars: Input is truncated to this length before the call.
            Callers must not assume the full text was considered.
    """

    def __init__(self, backend: AIBackend, max_input_chars: int = 8_000) -> None:
        self._backend = backend
        self._max_input_chars = max_input_chars

    def generate(self, text: str, hint: str | None = None) -> GenerationResult:
        """Generate sections for *text*. Never raises."""
        content = text[: self._max_input_chars].strip()
        if not content:
            return fallback_result()

        if not self._backend.available:
            return local_result(content)

        prompt = _PROMPT.format(
            hint=f"\nFocus on the topic: {hint}.\n" if hint else "",
            content=content,
        )
        try:
            raw = self._backend.complete_json(_SYSTEM_PROMPT, prompt)
        except Exception as exc:
            logger.error("insight_generation_failed", error=str(exc))
            return fallback_result()

        if not raw:
            logger.warning("insight_generation_empty")
            return fallback_result()

        try:
            return parse_response(raw)
        except (ValueError, ValidationError) as exc:
            logger.warning("insight_generation_invalid", error=str(exc)[:500])
            return fallback_result()
