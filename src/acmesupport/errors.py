class SupportBotError(Exception):
    """Base class for support bot errors."""


class ReplyGenerationError(SupportBotError):
    """The external language model could not produce a reply."""

    def __init__(self, message: str, original_exception: Exception | None = None) -> None:
        super().__init__(message)
        self.original_exception = original_exception


class ConfigurationMissingError(ReplyGenerationError):
    """A required credential for the language model is not configured."""
