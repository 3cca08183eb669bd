"""
Exceptions for the agentflow engine.

All exceptions inherit from AgentFlowError so the API layer and the workflow
executor can turn any failure into a structured result.
"""

from typing import Any, Optional


class AgentFlowError(Exception):
    """Base exception for all agentflow errors."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        details: Optional[dict] = None
    ):
        """
        Initialize agentflow error.

        Args:
            message: Human-readable error message
            status_code: HTTP status code used by the API layer
            details: Additional error details
        """
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict:
        """Convert error to dictionary for API response."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "status_code": self.status_code,
            "details": self.details,
        }


class ValidationError(AgentFlowError):
    """Malformed request or workflow definition."""

    def __init__(self, message: str, field: Optional[str] = None, details: Optional[dict] = None):
        super().__init__(message, status_code=400, details=details)
        self.field = field


class MissingStartNodeError(ValidationError):
    """Workflow definition has no start node."""

    def __init__(self, message: str = "No start node found in workflow"):
        super().__init__(message, field="nodes")


class NotFoundError(AgentFlowError):
    """Resource not found."""

    def __init__(self, resource: str, identifier: str, details: Optional[dict] = None):
        super().__init__(f"{resource} not found: {identifier}", status_code=404, details=details)
        self.resource = resource
        self.identifier = identifier


class ConcurrencyError(AgentFlowError):
    """A run is already in progress for the same (agent, user) key."""

    def __init__(
        self,
        message: str = "Another execution is already in progress for this agent",
        lock_key: Optional[str] = None,
    ):
        super().__init__(message, status_code=409, details={"lock_key": lock_key} if lock_key else None)
        self.lock_key = lock_key


class CredentialError(AgentFlowError):
    """No active credential for a provider."""

    def __init__(self, provider: str, message: Optional[str] = None):
        super().__init__(
            message or f"No active API key configured for provider: {provider}",
            status_code=401,
            details={"provider": provider},
        )
        self.provider = provider


class AccessDeniedError(AgentFlowError):
    """Caller does not own the requested resource."""

    def __init__(self, message: str = "Access denied", resource: Optional[str] = None):
        super().__init__(message, status_code=403)
        self.resource = resource


class RateLimitError(AgentFlowError):
    """Per-user request quota exceeded."""

    def __init__(
        self,
        message: str = "Rate limit exceeded. Please wait before making more requests.",
        retry_after: Optional[float] = None,
    ):
        super().__init__(message, status_code=429, details={"retry_after": retry_after} if retry_after else None)
        self.retry_after = retry_after


class TransportError(AgentFlowError):
    """Outbound call failed."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message, status_code=502, details=details)


class HttpError(TransportError):
    """
    Unrecoverable HTTP failure.

    `status` is the remote status: 0 for network failures, 408 for timeouts,
    otherwise the response status. `response` is the parsed HttpResponse when
    the server answered.
    """

    def __init__(self, message: str, status: Optional[int] = None, response: Any = None):
        super().__init__(message, details={"status": status})
        self.status = status
        self.response = response

    @property
    def retryable(self) -> bool:
        if self.status is None or self.status == 0:
            return True
        if self.status in (408, 429):
            return True
        return self.status >= 500


class WorkflowExecutionError(AgentFlowError):
    """Run-level failure that is not tied to a single handler."""

    def __init__(self, message: str, execution_id: Optional[str] = None):
        super().__init__(message, status_code=500)
        self.execution_id = execution_id


class NodeExecutionError(WorkflowExecutionError):
    """A node handler failed."""

    def __init__(
        self,
        message: str,
        node_id: Optional[str] = None,
        node_type: Optional[str] = None,
    ):
        super().__init__(message)
        self.node_id = node_id
        self.node_type = node_type
