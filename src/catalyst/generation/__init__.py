"""Artifact generation: the generator protocol, its errors and the Ollama backend."""

from catalyst.generation.base import (
    ArtifactGenerator,
    GenerationAPIError,
    GenerationConnectionError,
    GenerationError,
    GenerationTimeoutError,
    MalformedArtifactError,
)
from catalyst.generation.ollama import OllamaGenerator

__all__ = [
    "ArtifactGenerator",
    "GenerationAPIError",
    "GenerationConnectionError",
    "GenerationError",
    "GenerationTimeoutError",
    "MalformedArtifactError",
    "OllamaGenerator",
]
