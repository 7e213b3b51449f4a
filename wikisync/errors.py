"""Structured error responses for the wikisync tool layer."""

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Dict, Any, Optional

from .git_sync.errors import GitSyncError
from .git_sync.utils import sanitize_options, strip_url_credentials


class ErrorCategory(Enum):
    """Categories of errors for structured error handling."""
    GIT_SYNC = "git_sync"
    CONFIGURATION = "configuration"
    SYSTEM = "system"


@dataclass
class ErrorResponse:
    """Standardized error response format for sync operations."""
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


class ErrorHandler:
    """Turns sync exceptions into ``ErrorResponse`` objects and logs them."""

    def __init__(self):
        self.logger = logging.getLogger('wikisync.error_handler')

    def handle_git_sync_error(self, error: Exception, context: Dict[str, Any] = None) -> ErrorResponse:
        """Handle Git synchronization errors."""
        context = sanitize_options(context or {})

        if isinstance(error, GitSyncError):
            error_code = error.error_code
            message = str(error)
        elif "not a git repository" in str(error).lower():
            error_code = "GIT_NOT_REPOSITORY"
            message = "Git repository not initialized"
        elif isinstance(error, PermissionError):
            error_code = "GIT_PERMISSION_ERROR"
            message = "Permission denied for Git operation"
        else:
            error_code = "GIT_GENERAL_ERROR"
            message = f"Git operation failed: {error}"
        message = strip_url_credentials(message)

        error_response = ErrorResponse(
            error="Git sync operation failed",
            error_code=error_code,
            message=message,
            timestamp=datetime.now().isoformat(),
            category=ErrorCategory.GIT_SYNC.value,
            context=context
        )

        self.logger.warning(
            f"Git sync error: {message}",
            extra={
                'operation': context.get('operation', 'git_sync_error'),
                'error_code': error_code,
                'repository_path': context.get('repository_path')
            }
        )

        return error_response

    def handle_configuration_error(self, error: Exception, context: Dict[str, Any] = None) -> ErrorResponse:
        """Handle missing or invalid configuration values."""
        context = sanitize_options(context or {})
        message = f"Configuration error: {error}"

        error_response = ErrorResponse(
            error="Configuration error",
            error_code="CONFIGURATION_INVALID",
            message=message,
            timestamp=datetime.now().isoformat(),
            category=ErrorCategory.CONFIGURATION.value,
            context=context
        )

        self.logger.error(message, extra={'operation': 'configuration_error', 'error_code': "CONFIGURATION_INVALID"})

        return error_response

    def create_success_response(self, operation: str, data: Dict[str, Any], context: Dict[str, Any] = None) -> Dict[str, Any]:
        """Create a standardized success response for sync operations."""
        response = {
            "success": True,
            "operation": operation,
            "timestamp": datetime.now().isoformat(),
            "data": data
        }

        if context:
            response["context"] = context

        return response


error_handler = ErrorHandler()
