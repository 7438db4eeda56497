from survey_client.api import ApiClient
from survey_client.errors import (
    ActionInProgress,
    ApiError,
    InvalidAnswer,
    NetworkError,
    StorageUnavailable,
    SurveyClientError,
    ValidationFailed,
)

__all__ = [
    "ApiClient",
    "ActionInProgress",
    "ApiError",
    "InvalidAnswer",
    "NetworkError",
    "StorageUnavailable",
    "SurveyClientError",
    "ValidationFailed",
]
