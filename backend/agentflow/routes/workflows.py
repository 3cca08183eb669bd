"""
Workflow API Routes
Provides endpoints for running workflows and listing node types.
"""

from typing import Any

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel
import logging

from ..workflow.models import WorkflowDefinition

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/workflows", tags=["workflows"])


class ExecuteWorkflowRequest(BaseModel):
    workflow: WorkflowDefinition
    input: Any = None
    agentId: str
    userId: str


def get_workflow_executor(request: Request):
    """Helper to get the workflow executor from app state."""
    executor = getattr(request.app.state, 'workflow_executor', None)
    if not executor:
        raise HTTPException(status_code=503, detail="Workflow executor not initialized")
    return executor


@router.post("/execute")
async def execute_workflow(request: Request, body: ExecuteWorkflowRequest):
    """Run a workflow definition and return the structured result."""
    executor = get_workflow_executor(request)
    result = await executor.execute_workflow(body.workflow, body.input, body.agentId, body.userId)

    payload = result.model_dump(mode="json")
    if result.errorType == "ConcurrencyError":
        return JSONResponse(status_code=409, content=payload)
    return payload


@router.get("/nodes/types")
async def list_node_types(request: Request):
    """List node types the executor can run, aliases included."""
    executor = get_workflow_executor(request)
    return {"nodeTypes": executor.get_available_node_types()}
