"""
Tool API Routes
"""

from typing import Any, Dict

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, Field

router = APIRouter(prefix="/api/v1/tools", tags=["tools"])


class ExecuteToolRequest(BaseModel):
    input: Dict[str, Any] = Field(default_factory=dict)
    userId: str


@router.post("/{tool_id}/execute")
async def execute_tool(request: Request, tool_id: str, body: ExecuteToolRequest):
    """Run a single tool outside of a workflow."""
    dispatcher = getattr(request.app.state, 'tool_dispatcher', None)
    if not dispatcher:
        raise HTTPException(status_code=503, detail="Tool dispatcher not initialized")

    result = await dispatcher.execute_tool(tool_id, body.input, body.userId)
    return result.model_dump(mode="json")
