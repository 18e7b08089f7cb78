"""Review pipeline exceptions.

Transport failures live in ``persona_review.llm.errors``. A quote that cannot
be anchored is not an error; the matcher returns None for it.
"""


class ParseError(Exception):
    """Model output could not be recovered as JSON.

    Keeps the original response for diagnostics.
    """

    def __init__(self, message: str, raw: str | None = None):
        self.raw = raw
        super().__init__(message)


class PreconditionError(Exception):
    """A run was requested without enabled personas or without document text."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ReviewInProgressError(Exception):
    """A run was requested while another run on the same orchestrator is in flight."""

    def __init__(self, message: str = "A review run is already in progress"):
        self.message = message
        super().__init__(message)


class SurfaceError(Exception):
    """The document surface failed to search or insert a comment."""

    pass
