"""AI capabilities — backend, insight generator, embedding generator."""

from secondbrain.ai.backend import AIBackend, LiteLLMBackend, NullBackend, build_backend
from secondbrain.ai.embedder import EmbeddingGenerator
from secondbrain.ai.generator import GeneratedSection, GenerationResult, InsightGenerator

__all__ = [
    "AIBackend",
    "LiteLLMBackend",
    "NullBackend",
    "build_backend",
    "EmbeddingGenerator",
    "GeneratedSection",
    "GenerationResult",
    "InsightGenerator",
]
