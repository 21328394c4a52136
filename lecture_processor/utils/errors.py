"""Custom exception hierarchy for the lecture processing pipeline.

All exceptions inherit from PipelineError. Each collaborator boundary raises
a tagged subclass, so retry eligibility and user-facing messages are decided
by exception type rather than by inspecting message text.
"""


class PipelineError(Exception):
    """Base exception for all lecture pipeline errors."""

    def __init__(self, message: str, lecture_id: str | None = None) -> None:
        self.lecture_id = lecture_id
        super().__init__(message)

    @property
    def message(self) -> str:
        return self.args[0] if self.args else ""

    def __str__(self) -> str:
        if self.lecture_id:
            return f"[lecture={self.lecture_id}] {super().__str__()}"
        return super().__str__()


class NetworkError(PipelineError):
    """Raised when a collaborator cannot be reached (transient)."""

    def __init__(
        self,
        message: str,
        lecture_id: str | None = None,
        stage: str | None = None,
    ) -> None:
        self.stage = stage
        super().__init__(message, lecture_id)


class ContentQualityError(PipelineError):
    """Raised when the recording does not contain enough usable speech."""


class CollaboratorError(PipelineError):
    """Raised when an external service returns an application-level error."""

    stage = "collaborator"

    def __init__(
        self,
        message: str,
        lecture_id: str | None = None,
        provider: str | None = None,
    ) -> None:
        self.provider = provider
        super().__init__(message, lecture_id)


class EnhancementError(CollaboratorError):
    """Raised when audio enhancement fails."""

    stage = "enhance"


class TranscriptionError(CollaboratorError):
    """Raised when speech transcription fails."""

    stage = "transcribe"


class NoteGenerationError(CollaboratorError):
    """Raised when note generation fails."""

    stage = "generate"


class StorageError(PipelineError):
    """Raised when storage operations (object storage or database) fail."""

    def __init__(
        self,
        message: str,
        lecture_id: str | None = None,
        operation: str | None = None,
    ) -> None:
        self.operation = operation
        super().__init__(message, lecture_id)


class AudioFetchError(StorageError):
    """Raised when downloading the lecture audio fails."""

    def __init__(
        self, message: str, lecture_id: str | None = None, key: str | None = None
    ) -> None:
        self.key = key
        super().__init__(message, lecture_id, operation="download")


class TransitionConflictError(StorageError):
    """Raised when a status compare-and-swap finds an unexpected status.

    Another run has already advanced the lecture; the current run must stop
    without overwriting it.
    """

    def __init__(
        self,
        message: str,
        lecture_id: str | None = None,
        expected_status: str | None = None,
    ) -> None:
        self.expected_status = expected_status
        super().__init__(message, lecture_id, operation="update_lecture")


class PreconditionError(PipelineError):
    """Raised when a processing request is rejected before any work starts."""


class LectureNotFoundError(PreconditionError):
    """Raised when the lecture does not exist or is not owned by the caller."""


class LectureAlreadyProcessedError(PreconditionError):
    """Raised when the lecture is already in a terminal status."""

    def __init__(
        self,
        message: str,
        lecture_id: str | None = None,
        status: str | None = None,
    ) -> None:
        self.status = status
        super().__init__(message, lecture_id)
