"""Error taxonomy shared by the analysis pipeline.

StructuralError   bad input, rejected immediately and never retried.
TransientError    timeouts, network or cache outages. Analyzers degrade to a
                  fallback; anything else is retried at the job level.
InvariantViolation  corrupt derived state (e.g. unparsable cache JSON). The
                  offending entry is discarded and treated as a miss.
"""


class AnalysisError(Exception):
    """Base class for all pipeline errors."""


class StructuralError(AnalysisError):
    """The input can never be processed as given."""


class UnsupportedFormat(StructuralError):
    def __init__(self, mime_type: str) -> None:
        super().__init__(f"Unsupported file type: {mime_type}")
        self.mime_type = mime_type


class EmptyDocument(StructuralError):
    def __init__(self, path: str = "") -> None:
        super().__init__("No text could be extracted from document")
        self.path = path


class UnreadableDocument(StructuralError):
    def __init__(self, path: str = "", reason: str = "") -> None:
        super().__init__(f"Could not parse document: {reason}" if reason else "Could not parse document")
        self.path = path


class MissingDocument(StructuralError):
    def __init__(self, path: str = "") -> None:
        super().__init__(f"Uploaded document no longer exists: {path}")
        self.path = path


class TransientError(AnalysisError):
    """A collaborator failed in a way that may succeed on retry."""


class InvariantViolation(AnalysisError):
    """Derived state does not have the shape it must have."""
