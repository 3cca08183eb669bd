"""
Tool Dispatcher - resolves a tool by id, checks ownership and runs it

API and webhook tools go through the transport client. Email, AI-search and
custom tools are validated stand-ins that perform no I/O.
"""

import logging
import time
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Optional
from urllib.parse import quote

from ..errors import AccessDeniedError, AgentFlowError, HttpError, NotFoundError, ValidationError
from ..http import HttpRequestConfig, TransportClient
from ..http.client import HttpAuthentication
from ..ledger import ExecutionLedger, ToolExecutionRecord
from .models import ToolAuthentication, ToolDefinition, ToolExecutionResult, ToolType
from .registry import ToolRegistry

logger = logging.getLogger(__name__)

BODY_METHODS = ("POST", "PUT", "PATCH")

ToolHandler = Callable[[ToolDefinition, Dict[str, Any]], Awaitable[Any]]


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def substitute_url_params(endpoint: str, params: Dict[str, Any]) -> str:
    """Replace `{name}` segments with percent-encoded input values"""
    url = endpoint
    for name, value in params.items():
        placeholder = "{" + str(name) + "}"
        if placeholder in url and value is not None:
            url = url.replace(placeholder, quote(str(value), safe="-_.!~*'()"))
    return url


def to_http_authentication(auth: Optional[ToolAuthentication]) -> Optional[HttpAuthentication]:
    if auth is None or auth.type == "none":
        return None
    config = auth.config
    if auth.type == "api-key":
        return HttpAuthentication(
            type="api-key",
            apiKey=config.get("apiKey") or config.get("key"),
            apiKeyHeader=config.get("headerName") or config.get("apiKeyHeader"),
        )
    if auth.type == "basic":
        return HttpAuthentication(
            type="basic",
            username=config.get("username"),
            password=config.get("password"),
        )
    # bearer and oauth both end up as a bearer token
    return HttpAuthentication(
        type="bearer",
        token=config.get("token") or config.get("accessToken"),
    )


class ToolDispatcher:
    """Executes registered tools and logs every invocation to the ledger"""

    def __init__(
        self,
        registry: ToolRegistry,
        transport: Optional[TransportClient] = None,
        ledger: Optional[ExecutionLedger] = None,
    ):
        self.registry = registry
        self.transport = transport or TransportClient()
        self.ledger = ledger
        self.handlers: Dict[str, ToolHandler] = {
            ToolType.API.value: self._execute_api_tool,
            ToolType.WEBHOOK.value: self._execute_webhook_tool,
            ToolType.EMAIL.value: self._execute_email_tool,
            ToolType.AI.value: self._execute_ai_tool,
        }

    async def execute_tool(self, tool_id: str, input: Any, user_id: str) -> ToolExecutionResult:
        start_time = time.perf_counter()
        params = input if isinstance(input, dict) else {}

        try:
            tool = await self.registry.get_tool(tool_id)
            if tool is None:
                raise NotFoundError("Tool", tool_id)

            if not tool.isBuiltIn and tool.userId != user_id:
                raise AccessDeniedError("Access denied to this tool", resource=tool_id)

            handler = self.handlers.get(tool.type.value, self._execute_custom_tool)
            logger.info(f"Executing tool {tool_id} ({tool.type.value}) for user {user_id}")
            output = await handler(tool, params)

            execution_time = int((time.perf_counter() - start_time) * 1000)
            await self._log_execution(tool_id, user_id, "completed", input, output, execution_time)

            return ToolExecutionResult(success=True, output=output, executionTime=execution_time)

        except Exception as e:
            execution_time = int((time.perf_counter() - start_time) * 1000)
            if isinstance(e, AgentFlowError):
                message = e.message
                logger.warning(f"Tool {tool_id} failed: {message}")
            else:
                message = str(e)
                logger.error(f"Tool {tool_id} raised {e.__class__.__name__}: {message}", exc_info=True)
            await self._log_execution(tool_id, user_id, "failed", input, None, execution_time, message)

            return ToolExecutionResult(
                success=False,
                output=None,
                error=message,
                errorType=e.__class__.__name__,
                executionTime=execution_time,
            )

    # ----- Handlers -----

    async def _execute_api_tool(self, tool: ToolDefinition, params: Dict[str, Any]) -> Dict[str, Any]:
        config = tool.config
        if not config.endpoint:
            raise ValidationError("API endpoint not configured", field="endpoint")

        method = (config.method or "GET").upper()
        if method not in ("GET", "DELETE") + BODY_METHODS:
            raise ValidationError(f"Unsupported HTTP method: {method}", field="method")
        headers = {"Content-Type": "application/json", **config.headers}

        request = HttpRequestConfig(
            url=substitute_url_params(config.endpoint, params),
            method=method,
            headers=headers,
            body=params if method in BODY_METHODS else None,
            timeout=config.timeout,
            retries=config.retries,
            authentication=to_http_authentication(config.authentication),
        )

        try:
            response = await self.transport.request(request)
        except HttpError as e:
            if e.response is not None:
                raise HttpError(
                    f"API request failed: {e.response.status} {e.response.statusText}",
                    status=e.status,
                    response=e.response,
                )
            raise

        return {
            "status": response.status,
            "statusText": response.statusText,
            "data": response.data,
            "headers": response.headers,
        }

    async def _execute_webhook_tool(self, tool: ToolDefinition, params: Dict[str, Any]) -> Dict[str, Any]:
        return await self._execute_api_tool(tool, params)

    async def _execute_email_tool(self, tool: ToolDefinition, params: Dict[str, Any]) -> Dict[str, Any]:
        to, subject, body = params.get("to"), params.get("subject"), params.get("body")
        if not to or not subject or not body:
            raise ValidationError("Missing required email parameters: to, subject, body")

        return {
            "success": True,
            "message": f"Email sent to {to}",
            "messageId": f"msg_{int(time.time() * 1000)}",
            "timestamp": _now_iso(),
        }

    async def _execute_ai_tool(self, tool: ToolDefinition, params: Dict[str, Any]) -> Dict[str, Any]:
        query = params.get("query")
        if not query:
            raise ValidationError("Missing required parameter: query", field="query")

        return {
            "query": query,
            "results": [
                {
                    "title": "Search Result 1",
                    "url": "https://example.com/result1",
                    "snippet": f"Top match for '{query}'.",
                },
                {
                    "title": "Search Result 2",
                    "url": "https://example.com/result2",
                    "snippet": f"Related information about '{query}'.",
                },
            ],
            "timestamp": _now_iso(),
        }

    async def _execute_custom_tool(self, tool: ToolDefinition, params: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "success": True,
            "message": f'Custom tool "{tool.name or tool.id}" executed successfully',
            "input": params,
            "timestamp": _now_iso(),
        }

    async def _log_execution(
        self,
        tool_id: str,
        user_id: str,
        status: str,
        input: Any,
        output: Any,
        execution_time: int,
        error: Optional[str] = None,
    ) -> None:
        if self.ledger is None:
            return
        try:
            await self.ledger.record_tool_execution(ToolExecutionRecord(
                toolId=tool_id,
                userId=user_id,
                status=status,
                input=input,
                output=output,
                error=error,
                executionTimeMs=execution_time,
            ))
        except Exception as e:
            logger.error(f"Failed to log tool execution for {tool_id}: {e}")
