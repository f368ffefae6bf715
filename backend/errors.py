"""
Exception hierarchy for the dataset builder.

Configuration, archive and output errors abort the run. SynthesisError is
local to a single post: the generator logs it and drops that post.
"""


class DatasetError(Exception):
    """Base exception for all dataset builder errors."""


class ConfigurationError(DatasetError):
    """Raised when a required setting is missing or invalid."""

    def __init__(self, key: str, reason: str = "missing or empty"):
        self.key = key
        super().__init__(f"Configuration error for '{key}': {reason}")


class ArchiveReadError(DatasetError):
    """Raised when the manifest or an archive fragment cannot be read."""

    def __init__(self, path: str, detail: str):
        self.path = path
        super().__init__(f"Cannot read {path}: {detail}")


class SchemaValidationError(DatasetError):
    """Raised when a fragment's records do not match the tweet schema."""

    def __init__(self, path: str, detail: str):
        self.path = path
        super().__init__(f"Schema validation failed for {path}: {detail}")


class OutputWriteError(DatasetError):
    """Raised when the output directory or file cannot be created or written."""

    def __init__(self, path: str, detail: str):
        self.path = path
        super().__init__(f"Cannot write {path}: {detail}")


class SynthesisError(DatasetError):
    """Raised when the prompt generation call fails or returns unparsable content."""


__all__ = [
    "DatasetError",
    "ConfigurationError",
    "ArchiveReadError",
    "SchemaValidationError",
    "OutputWriteError",
    "SynthesisError",
]
