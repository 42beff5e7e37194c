"""Error taxonomy for meal analysis."""

from enum import Enum

GENERIC_FAILURE_MESSAGE = (
    "We couldn't analyze your photo. "
    "Please check your connection and try again later."
)


class ErrorCategory(str, Enum):
    """Coarse classes of failure surfaced to the user."""

    CONFIGURATION = "configuration"
    INPUT = "input"
    TRANSPORT = "transport"
    PROTOCOL = "protocol"
    PERSISTENCE = "persistence"
    QUOTA = "quota"


class AnalysisError(Exception):
    """Base class for failures raised by the analysis collaborator."""

    category: ErrorCategory = ErrorCategory.PROTOCOL
    retryable: bool = True

    @property
    def user_message(self) -> str:
        return GENERIC_FAILURE_MESSAGE


class MissingCredentialError(AnalysisError):
    """No API key is configured."""

    category = ErrorCategory.CONFIGURATION
    retryable = False

    def __init__(self) -> None:
        super().__init__("Missing OpenAI API key.")

    @property
    def user_message(self) -> str:
        return "Missing API key. Set OPENAI_API_KEY to enable photo analysis."


class BadImageError(AnalysisError):
    """The captured image could not be encoded for the request."""

    category = ErrorCategory.INPUT
    retryable = False

    def __init__(self) -> None:
        super().__init__("Could not encode image.")


class HttpError(AnalysisError):
    """The analysis service answered with a non-success status."""

    category = ErrorCategory.TRANSPORT

    def __init__(self, status: int, body: str) -> None:
        super().__init__(f"Server error ({status}). {body}")
        self.status = status
        self.body = body


class EmptyContentError(AnalysisError):
    """The model returned no content."""

    def __init__(self) -> None:
        super().__init__("No content returned by the model.")


class DecodeError(AnalysisError):
    """The model output could not be decoded into a meal estimate."""

    def __init__(self, detail: str) -> None:
        super().__init__(f"Could not read model output. {detail}")
        self.detail = detail


class QuotaExceededError(Exception):
    """Local policy rejection: the daily analysis limit is used up."""

    category = ErrorCategory.QUOTA
    retryable = False

    def __init__(self, used: int, limit: int) -> None:
        super().__init__(f"Daily analysis limit reached ({used}/{limit}).")
        self.used = used
        self.limit = limit

    @property
    def user_message(self) -> str:
        return (
            f"{self.used}/{self.limit} AI photos used today. "
            "The limit resets at midnight."
        )
