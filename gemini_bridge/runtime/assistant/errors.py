from __future__ import annotations

from typing import Any

from ..error_codes import ErrorCode


class AssistantError(RuntimeError):
    def __init__(
        self,
        message: str,
        *,
        code: ErrorCode,
        details: dict[str, Any] | None = None,
        retryable: bool = False,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.details = details
        self.retryable = retryable
        self.__cause__ = cause


class AssistantNotInstalledError(AssistantError):
    def __init__(self, binary: str) -> None:
        super().__init__(
            "Gemini CLI is not installed. Please reinstall geary-gemini.",
            code=ErrorCode.NOT_INSTALLED,
            details={"binary": binary},
        )
        self.binary = binary


class AuthenticationRequiredError(AssistantError):
    def __init__(self, message: str = "Please login with Google first", *, stderr: str = "") -> None:
        super().__init__(message, code=ErrorCode.AUTH_REQUIRED, details={"stderr": stderr})
        self.stderr = stderr


class AuthenticationFailedError(AssistantError):
    """
    Raised when `auth login` does not leave the assistant authenticated.

    `url` is the sign-in URL seen during the attempt, if any, so the host can offer it
    as a manual fallback.
    """

    def __init__(self, message: str, *, url: str | None = None, exit_code: int | None = None) -> None:
        super().__init__(message, code=ErrorCode.AUTH_FAILED, details={"url": url, "exit_code": exit_code})
        self.url = url
        self.exit_code = exit_code


class ProcessFailureError(AssistantError):
    def __init__(self, message: str, *, exit_code: int | None, stderr: str) -> None:
        super().__init__(
            message,
            code=ErrorCode.PROCESS_FAILURE,
            details={"exit_code": exit_code},
        )
        self.exit_code = exit_code
        self.stderr = stderr
