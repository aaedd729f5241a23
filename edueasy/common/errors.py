"""Domain-specific exception hierarchy for the document workflow."""


class EduEasyError(Exception):
    """Base exception for known workflow failures."""


class ConfigError(EduEasyError):
    """Raised when required configuration is missing or invalid."""


class RepositoryError(EduEasyError):
    """Raised for Supabase table failures."""


class StorageError(EduEasyError):
    """Raised when interacting with Supabase Storage."""


class FileValidationError(EduEasyError):
    """Raised when a selected file has an unsupported type or size."""


class CompressionError(EduEasyError):
    """Raised when an image cannot be recompressed."""


class VerificationServiceError(EduEasyError):
    """Raised when the verification function fails or reports an error."""


class MalformedResponseError(EduEasyError):
    """Raised when a backend response does not match the expected shape."""


class SlotStateError(EduEasyError):
    """Raised when a slot update would break the slot invariants."""


class UploadInProgressError(SlotStateError):
    """Raised when an upload is started for a slot that is already uploading."""
