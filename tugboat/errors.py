"""Error handling framework for Tugboat."""

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Dict, Any, Optional


class TugboatError(Exception):
    """Base class for errors that abort a whole Tugboat command."""


class ConfigurationError(TugboatError, ValueError):
    """Configuration file is missing, malformed or fails validation."""


class UnknownTargetError(TugboatError):
    """One or more requested target names are not configured."""

    def __init__(self, names):
        self.names = list(names)
        super().__init__(f"unknown targets: {', '.join(self.names)}")


class TargetPathError(TugboatError):
    """A target's local path does not exist."""

    def __init__(self, target_name: str, path):
        self.target_name = target_name
        self.path = path
        super().__init__(f"target {target_name!r} path does not exist: {path}")


class ManifestFormatError(TugboatError):
    """A foldout manifest could not be parsed."""


class InvalidFoldoutError(TugboatError):
    """A foldout manifest parsed but is structurally invalid."""


class ProviderError(TugboatError):
    """A remote provider request failed."""


class ErrorCategory(Enum):
    """Categories of errors for structured error handling."""
    CONFIGURATION = "configuration"
    TARGET = "target"
    FOLDOUT = "foldout"
    PROVIDER = "provider"
    GIT = "git"
    SYSTEM = "system"


@dataclass
class ErrorResponse:
    """Standardized error response format for Tugboat commands."""
    error: str
    error_code: str
    message: str
    timestamp: str
    category: str
    context: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert error response to dictionary format."""
        result = {
            "error": self.error,
            "error_code": self.error_code,
            "message": self.message,
            "timestamp": self.timestamp,
            "category": self.category
        }
        if self.context:
            result["context"] = self.context
        return result


# error type -> (category, error_code)
_CLASSIFICATION = [
    (ConfigurationError, ErrorCategory.CONFIGURATION, "CONFIG_INVALID"),
    (UnknownTargetError, ErrorCategory.TARGET, "TARGET_UNKNOWN"),
    (TargetPathError, ErrorCategory.TARGET, "TARGET_PATH_MISSING"),
    (ManifestFormatError, ErrorCategory.FOLDOUT, "FOLDOUT_MALFORMED"),
    (InvalidFoldoutError, ErrorCategory.FOLDOUT, "FOLDOUT_INVALID"),
    (ProviderError, ErrorCategory.PROVIDER, "PROVIDER_ERROR"),
]


class ErrorHandler:
    """Turns command-level exceptions into logged, structured responses."""

    def __init__(self):
        self.logger = logging.getLogger('tugboat.error_handler')

    def classify(self, error: Exception) -> tuple:
        for error_type, category, code in _CLASSIFICATION:
            if isinstance(error, error_type):
                return category, code
        if isinstance(error, OSError):
            return ErrorCategory.SYSTEM, "FILE_IO_ERROR"
        return ErrorCategory.SYSTEM, "GENERAL_ERROR"

    def handle_command_error(self, error: Exception, operation: str,
                             context: Dict[str, Any] = None) -> ErrorResponse:
        """Handle an error that aborted a command before or during repository work."""
        context = context or {}
        category, error_code = self.classify(error)

        error_response = ErrorResponse(
            error=f"{operation} failed",
            error_code=error_code,
            message=str(error),
            timestamp=datetime.now().isoformat(),
            category=category.value,
            context=context
        )

        log = self.logger.warning if isinstance(error, TugboatError) else self.logger.error
        log(
            f"{operation} error: {error}",
            extra={
                'operation': operation,
                'error_code': error_code,
            }
        )

        return error_response

    def create_success_response(self, operation: str, data: Dict[str, Any]) -> Dict[str, Any]:
        """Create a standardized success response."""
        return {
            "success": True,
            "operation": operation,
            "timestamp": datetime.now().isoformat(),
            "data": data
        }


error_handler = ErrorHandler()
