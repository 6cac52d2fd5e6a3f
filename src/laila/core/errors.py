# src/laila/core/errors.py


class LailaError(Exception):
    """Base for every failure the chat handler knows how to classify."""


class ValidationError(LailaError):
    """Client-caused: empty message, wrong method."""

    def __init__(self, message: str, status: int = 400):
        super().__init__(message)
        self.status = status


class ConfigurationError(LailaError):
    """Operator-caused: required credentials missing."""


class UpstreamUnavailable(LailaError):
    """A best-effort collaborator failed; callers degrade instead of failing."""

    def __init__(self, operation: str, detail: str = ""):
        super().__init__(f"{operation}: {detail}" if detail else operation)
        self.operation = operation
        self.detail = detail


class EmbeddingError(UpstreamUnavailable):
    def __init__(self, detail: str = ""):
        super().__init__("embed", detail)


class StoreError(UpstreamUnavailable):
    pass


class CompletionError(LailaError):
    """The one fatal failure: no model payload could be obtained."""

    def __init__(self, detail: str, status: int | None = None):
        super().__init__(detail)
        self.detail = detail
        self.status = status


CompletionFailure = CompletionError
