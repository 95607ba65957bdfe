from .errors import (
    DataUnavailable,
    EmbeddingServiceError,
    GenerationServiceError,
    InvalidRequest,
    UnknownPersona,
)
from .pipeline import CommentaryPipeline, fallback_commentary

__all__ = [
    "CommentaryPipeline",
    "fallback_commentary",
    "InvalidRequest",
    "UnknownPersona",
    "DataUnavailable",
    "EmbeddingServiceError",
    "GenerationServiceError",
]
