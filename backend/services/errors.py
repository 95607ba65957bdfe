"""Error taxonomy for the commentary pipeline.

Only InvalidRequest reaches callers. The service errors are absorbed by the
pipeline and kept for diagnostic logging.
"""


class CommentaryError(Exception):
    """Base class for commentary pipeline errors."""


class InvalidRequest(CommentaryError):
    """Unknown persona or a MatchEvent missing required fields."""


class UnknownPersona(CommentaryError, LookupError):
    def __init__(self, persona_id: str) -> None:
        super().__init__(f"Commentator not found: {persona_id}")
        self.persona_id = persona_id


class DataUnavailable(CommentaryError):
    """Corpus source missing or malformed, or no index has been built yet."""


class EmbeddingServiceError(CommentaryError):
    """Embedding capability failed or timed out."""


class GenerationServiceError(CommentaryError):
    """Generation capability failed, timed out, or returned nothing usable."""
