from typing import Optional


class SurveyClientError(Exception):
    """Base class for every error raised by this package."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ApiError(SurveyClientError):
    """Non-2xx answer from the backend.

    `message` is the body's `detail` string when the backend sent one,
    otherwise the generic message of the failed operation.
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code

    @property
    def is_not_found(self) -> bool:
        return self.status_code == 404


class NetworkError(ApiError):
    """The request never produced an HTTP response."""

    def __init__(self, message: str):
        super().__init__(message, status_code=None)


class ValidationFailed(SurveyClientError):
    """Client-side validation failed; nothing was sent."""

    def __init__(self, messages: list[str]):
        super().__init__("; ".join(messages))
        self.messages = list(messages)


class ActionInProgress(SurveyClientError):
    pass


class InvalidAnswer(SurveyClientError):
    pass


class StorageUnavailable(SurveyClientError):
    pass
