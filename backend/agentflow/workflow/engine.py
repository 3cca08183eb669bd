"""
Workflow Executor - Runs a workflow by walking its node graph from the start node
"""

import logging
import time
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from ..errors import AgentFlowError, ConcurrencyError, NodeExecutionError, WorkflowExecutionError
from ..ledger import RunRecord, StepRecord
from .events import ExecutionEventBus, RUN_FINISHED, RUN_STARTED, STEP_FINISHED, STEP_STARTED
from .executors import NodeExecutorRegistry
from .executors.base import ExecutionContext, NodeExecutor
from .locks import InMemoryLockManager, LockManager
from .models import (
    ExecutionResult,
    ExecutionStep,
    NodeType,
    StepStatus,
    WorkflowDefinition,
    WorkflowEdge,
    WorkflowNode,
)
from .validation import validate_workflow

logger = logging.getLogger(__name__)

DEFAULT_MAX_STEPS = 100


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)


class WorkflowExecutor:
    """
    Executes workflows one node at a time.

    The executor:
    1. Admits at most one run per (agent, user); a second caller fails fast
    2. Validates the definition and finds the start node
    3. Runs each node's executor, storing its output under the node id
    4. Follows the first outgoing edge, or the true/false edge of a rule node
    5. Publishes run and step events for the ledger subscriber

    Callers always get an ExecutionResult back, never an exception.
    """

    def __init__(
        self,
        provider_router: Any = None,
        tool_dispatcher: Any = None,
        lock_manager: Optional[LockManager] = None,
        event_bus: Optional[ExecutionEventBus] = None,
        registry: Optional[NodeExecutorRegistry] = None,
        max_steps: int = DEFAULT_MAX_STEPS,
    ):
        self.provider_router = provider_router
        self.tool_dispatcher = tool_dispatcher
        self.lock_manager = lock_manager or InMemoryLockManager()
        self.event_bus = event_bus or ExecutionEventBus()
        self.registry = registry or NodeExecutorRegistry()
        self.max_steps = max_steps

    async def execute_workflow(
        self,
        workflow: WorkflowDefinition,
        input: Any,
        agent_id: str,
        user_id: str,
    ) -> ExecutionResult:
        """
        Execute a workflow from its start node to an end node or a dead end.

        Args:
            workflow: The definition to run
            input: Run input, exposed to nodes as variables["input"]
            agent_id: Agent owning the workflow
            user_id: User on whose behalf the run happens

        Returns:
            ExecutionResult with the final output and one step per node visited
        """
        start_time = time.perf_counter()
        execution_id = str(uuid.uuid4())
        steps: List[ExecutionStep] = []
        lock_key = f"{agent_id}:{user_id}"

        if not await self.lock_manager.acquire(lock_key):
            error = ConcurrencyError(lock_key=lock_key)
            logger.warning(f"Rejected execution for {lock_key}: {error.message}")
            return ExecutionResult(
                success=False,
                error=error.message,
                errorType=error.__class__.__name__,
                executionTime=_elapsed_ms(start_time),
                executionId=execution_id,
            )

        run = RunRecord(id=execution_id, agentId=agent_id, userId=user_id, input=input)
        logger.info(f"Starting workflow execution: {execution_id} (agent={agent_id}, user={user_id})")

        try:
            await self.event_bus.publish(RUN_STARTED, {"run": run})

            context = ExecutionContext(
                execution_id=execution_id,
                agent_id=agent_id,
                user_id=user_id,
                input=input,
                variables={"input": input},
                provider_router=self.provider_router,
                tool_dispatcher=self.tool_dispatcher,
                logging_enabled=workflow.settings.loggingEnabled,
            )

            start_node = validate_workflow(workflow)
            max_steps = workflow.settings.maxSteps or self.max_steps
            output = await self._run(workflow, start_node, context, steps, max_steps)

            result = ExecutionResult(
                success=True,
                output=output,
                executionTime=_elapsed_ms(start_time),
                steps=steps,
                executionId=execution_id,
            )
            run.status = "completed"
            run.output = output
            logger.info(f"Workflow execution completed: {execution_id} ({len(steps)} steps)")

        except Exception as e:
            message = e.message if isinstance(e, AgentFlowError) else str(e)
            logger.error(f"Workflow execution failed: {execution_id} - {message}")
            result = ExecutionResult(
                success=False,
                error=message,
                errorType=e.__class__.__name__,
                executionTime=_elapsed_ms(start_time),
                steps=steps,
                executionId=execution_id,
            )
            run.status = "failed"
            run.error = message

        finally:
            try:
                await self.lock_manager.release(lock_key)
            except Exception as e:
                logger.error(f"Failed to release execution lock {lock_key}: {e}")

        run.executionTimeMs = result.executionTime
        run.completedAt = _utcnow()
        await self.event_bus.publish(RUN_FINISHED, {"run": run})

        return result

    async def _run(
        self,
        workflow: WorkflowDefinition,
        start_node: WorkflowNode,
        context: ExecutionContext,
        steps: List[ExecutionStep],
        max_steps: int,
    ) -> Any:
        node = start_node
        while True:
            if len(steps) >= max_steps:
                raise WorkflowExecutionError(
                    f"Workflow exceeded the maximum of {max_steps} steps",
                    execution_id=context.execution_id,
                )

            output = await self._execute_node(node, context, steps)

            if node.type == NodeType.END.value:
                return output

            edge = self._select_next_edge(workflow, node, output)
            if edge is None:
                return output

            next_node = workflow.get_node(edge.target)
            if next_node is None:
                raise WorkflowExecutionError(
                    f"Next node not found: {edge.target}",
                    execution_id=context.execution_id,
                )
            node = next_node

    async def _execute_node(
        self,
        node: WorkflowNode,
        context: ExecutionContext,
        steps: List[ExecutionStep],
    ) -> Any:
        """Execute a single node and record its step"""
        context.current_node_id = node.id
        inputs = dict(context.variables)
        sequence = len(steps)
        step = ExecutionStep(
            nodeId=node.id,
            nodeType=node.type,
            status=StepStatus.RUNNING,
            input=inputs,
        )
        steps.append(step)
        await self.event_bus.publish(STEP_STARTED, {"step": self._step_record(context, step, sequence)})

        log_offset = len(context.logs)
        start_time = time.perf_counter()

        try:
            executor_class = self.registry.get(node.type)
            if not executor_class:
                raise NodeExecutionError(f"Unknown node type: {node.type}", node_id=node.id, node_type=node.type)

            executor: NodeExecutor = executor_class(node.data.config, node_id=node.id)
            errors = executor.validate_config()
            if errors:
                raise NodeExecutionError("; ".join(errors), node_id=node.id, node_type=node.type)

            context.log(f"Executing node: {node.data.label or node.id} ({node.type})")
            output = await executor.execute(inputs, context)

        except Exception as e:
            step.status = StepStatus.FAILED
            step.error = e.message if isinstance(e, AgentFlowError) else str(e)
            step.endTime = _utcnow()
            step.duration = _elapsed_ms(start_time)
            step.logs = context.logs[log_offset:]
            logger.error(f"Node execution failed: {node.id} - {step.error}")
            await self.event_bus.publish(STEP_FINISHED, {"step": self._step_record(context, step, sequence)})

            if isinstance(e, AgentFlowError):
                raise
            raise NodeExecutionError(step.error, node_id=node.id, node_type=node.type) from e

        step.status = StepStatus.COMPLETED
        step.output = output
        step.endTime = _utcnow()
        step.duration = _elapsed_ms(start_time)
        context.set_variable(node.id, output)
        step.logs = context.logs[log_offset:]
        await self.event_bus.publish(STEP_FINISHED, {"step": self._step_record(context, step, sequence)})

        return output

    def _select_next_edge(
        self,
        workflow: WorkflowDefinition,
        node: WorkflowNode,
        output: Any,
    ) -> Optional[WorkflowEdge]:
        """
        First outgoing edge, unless the node branches on its result.

        A branching node with edges labeled "true"/"false" follows the edge
        matching its boolean result; no matching edge ends the run there.
        """
        edges = workflow.outgoing_edges(node.id)
        if not edges:
            return None

        executor_class = self.registry.get(node.type)
        if executor_class and executor_class.is_branching and isinstance(output, dict) and "result" in output:
            labeled = [edge for edge in edges if edge.sourceHandle in ("true", "false")]
            if labeled:
                handle = "true" if output["result"] else "false"
                return next((edge for edge in labeled if edge.sourceHandle == handle), None)

        return edges[0]

    @staticmethod
    def _step_record(context: ExecutionContext, step: ExecutionStep, sequence: int) -> StepRecord:
        return StepRecord(
            executionId=context.execution_id,
            sequence=sequence,
            nodeId=step.nodeId,
            nodeType=step.nodeType,
            status=step.status.value,
            input=step.input,
            output=step.output,
            error=step.error,
            executionTimeMs=step.duration,
            startedAt=step.startTime,
            completedAt=step.endTime,
        )

    def get_available_node_types(self) -> List[Dict[str, Any]]:
        """Get list of available node types, aliases included"""
        return [definition.model_dump() for definition in self.registry.node_types()]
