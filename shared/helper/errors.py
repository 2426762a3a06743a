"""Exception taxonomy of the autofill engine.

EmbeddingShapeError is fatal to the call that produced it.
ProviderUnavailableError is recovered locally by the fallback paths.
NotFoundError is surfaced to the caller (HTTP 404 in the API layer).
"""


class AutofillError(Exception):
    """Base class for all engine errors."""


class EmbeddingShapeError(AutofillError):
    """An embedding vector does not have the configured dimensionality."""

    def __init__(self, expected: int, actual: int):
        self.expected = expected
        self.actual = actual
        super().__init__(f"Embedding has {actual} dimensions, expected {expected}.")


class ProviderUnavailableError(AutofillError):
    """An embedding, generation or search backend failed or returned garbage."""


class NotFoundError(AutofillError):
    """A referenced form, field or document does not exist for the owner."""

    def __init__(self, kind: str, identifier: str):
        self.kind = kind
        self.identifier = identifier
        super().__init__(f"{kind.capitalize()} '{identifier}' not found.")
