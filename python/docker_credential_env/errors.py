"""
Error types for the credential helper.

Every failure raised by the resolution engine derives from CredentialHelperError
and carries an ErrorCategory so the CLI can decide how to report it. "Not found"
is never an error: resolvers return None for it.
"""

from enum import Enum
from typing import Any, Dict, List, Optional


class ErrorCategory(Enum):
    """Categories of errors for better error handling"""
    VALIDATION = "validation"
    PARTIAL_CONFIG = "partial_config"
    FALLBACK_EXHAUSTED = "fallback_exhausted"
    REMOTE = "remote"
    TIMEOUT = "timeout"
    DECODE = "decode"
    NOT_SUPPORTED = "not_supported"
    UNKNOWN = "unknown"


class CredentialHelperError(Exception):
    """Exception with actionable guidance for users"""

    category = ErrorCategory.UNKNOWN

    def __init__(self, message: str, suggestions: Optional[List[str]] = None,
                 details: Optional[Dict[str, Any]] = None):
        """Initialize error

        Args:
            message: Primary error message (this is what str() returns)
            suggestions: List of suggested fixes
            details: Additional context information, must never contain secrets
        """
        self.message = message
        self.suggestions = suggestions or []
        self.details = details or {}
        super().__init__(message)

    def format_message(self) -> str:
        """Format the complete error message with suggestions"""
        lines = [self.message]

        if self.suggestions:
            lines.append("Suggested fixes:")
            for i, suggestion in enumerate(self.suggestions, 1):
                lines.append(f"   {i}. {suggestion}")

        if self.details:
            lines.append("Additional details:")
            for key, value in self.details.items():
                lines.append(f"   {key}: {value}")

        return "\n".join(lines)


class NotSupportedError(CredentialHelperError):
    """The requested helper verb is not supported"""
    category = ErrorCategory.NOT_SUPPORTED

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(f"{operation}: not supported")


class HostnameParseError(CredentialHelperError):
    """The server URL could not be parsed"""
    category = ErrorCategory.VALIDATION


class AccountContextError(CredentialHelperError):
    """The AWS account context is missing required fields"""
    category = ErrorCategory.VALIDATION


class SetupError(CredentialHelperError):
    """Invalid arguments or I/O failure in the setup command"""
    category = ErrorCategory.VALIDATION


class PartialCredentialsError(CredentialHelperError):
    """Account-suffixed AWS variables are present but incomplete"""
    category = ErrorCategory.PARTIAL_CONFIG

    def __init__(self, variable: str, account_id: str):
        self.variable = variable
        super().__init__(
            f"environment variable {variable} not found",
            suggestions=[
                f"Set {variable}, or unset every *_{account_id} AWS variable to use the standard credentials",
            ],
            details={"account_id": account_id},
        )


class CredentialsExhaustedError(CredentialHelperError):
    """Neither account-suffixed nor standard AWS credentials are available"""
    category = ErrorCategory.FALLBACK_EXHAUSTED

    def __init__(self, variable: str, account_id: str):
        self.variable = variable
        super().__init__(
            f"no account credentials found and standard {variable} not found",
            suggestions=[
                f"Set AWS_ACCESS_KEY_ID_{account_id} and AWS_SECRET_ACCESS_KEY_{account_id}",
                "Or set AWS_ACCESS_KEY_ID and AWS_SECRET_ACCESS_KEY",
                f"Or name a profile with AWS_PROFILE_{account_id} or AWS_PROFILE",
            ],
            details={"account_id": account_id},
        )


class ProfileCredentialsError(CredentialHelperError):
    """A named AWS profile is missing or yields no credentials"""
    category = ErrorCategory.FALLBACK_EXHAUSTED

    def __init__(self, profile: str, variable: str, reason: str):
        self.profile = profile
        self.variable = variable
        super().__init__(
            f"profile {profile!r} from {variable} could not be used: {reason}",
            suggestions=[f"Check the [profile {profile}] section of ~/.aws/config and ~/.aws/credentials"],
            details={"profile": profile},
        )


class RemoteCallError(CredentialHelperError):
    """An AWS API call failed after the retry policy was exhausted"""
    category = ErrorCategory.REMOTE

    def __init__(self, operation: str, error: Exception):
        self.operation = operation
        super().__init__(
            f"{operation} failed: {error}",
            suggestions=[
                "Check the AWS credentials are valid and not expired",
                "Check IAM permissions for ecr:GetAuthorizationToken (and sts:AssumeRole when a role is set)",
            ],
            details={"operation": operation, "error_type": type(error).__name__},
        )


class TokenExchangeTimeoutError(CredentialHelperError):
    """The token exchange did not complete within the deadline"""
    category = ErrorCategory.TIMEOUT

    def __init__(self, operation: str, timeout: float):
        self.operation = operation
        self.timeout = timeout
        super().__init__(
            f"{operation} timed out after {timeout:g}s",
            suggestions=["Check network connectivity to the AWS endpoints"],
            details={"operation": operation, "timeout": timeout},
        )


class TokenDecodeError(CredentialHelperError):
    """The registry returned a malformed authorization token"""
    category = ErrorCategory.DECODE
