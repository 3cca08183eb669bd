"""
Execution Ledger - durable sink for run, step and tool-execution records

The engine only writes to the ledger. Reader helpers on the concrete ledgers
exist for operators and tests.
"""

import json
import logging
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

import aiosqlite
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RunRecord(BaseModel):
    id: str
    agentId: str
    userId: str
    status: str = "running"  # running | completed | failed
    input: Any = None
    output: Any = None
    error: Optional[str] = None
    executionTimeMs: Optional[int] = None
    startedAt: datetime = Field(default_factory=_utcnow)
    completedAt: Optional[datetime] = None


class StepRecord(BaseModel):
    executionId: str
    sequence: int  # Position in the run; a node visited twice gets two records
    nodeId: str
    nodeType: str
    status: str = "running"
    input: Any = None
    output: Any = None
    error: Optional[str] = None
    executionTimeMs: Optional[int] = None
    startedAt: datetime = Field(default_factory=_utcnow)
    completedAt: Optional[datetime] = None


class ToolExecutionRecord(BaseModel):
    toolId: str
    userId: str
    status: str  # completed | failed
    input: Any = None
    output: Any = None
    error: Optional[str] = None
    executionTimeMs: int = 0
    createdAt: datetime = Field(default_factory=_utcnow)


class ExecutionLedger(ABC):
    """Write-only sink; implementations may raise, callers log and continue"""

    @abstractmethod
    async def create_run(self, run: RunRecord) -> None:
        raise NotImplementedError

    @abstractmethod
    async def update_run(self, run: RunRecord) -> None:
        raise NotImplementedError

    @abstractmethod
    async def create_step(self, step: StepRecord) -> None:
        raise NotImplementedError

    @abstractmethod
    async def update_step(self, step: StepRecord) -> None:
        raise NotImplementedError

    @abstractmethod
    async def record_tool_execution(self, record: ToolExecutionRecord) -> None:
        raise NotImplementedError


class InMemoryExecutionLedger(ExecutionLedger):
    """Keeps copies of every record; used by tests and single-process setups"""

    def __init__(self):
        self.runs: Dict[str, RunRecord] = {}
        self.steps: Dict[str, List[StepRecord]] = {}
        self.tool_executions: List[ToolExecutionRecord] = []

    async def create_run(self, run: RunRecord) -> None:
        self.runs[run.id] = run.model_copy(deep=True)

    async def update_run(self, run: RunRecord) -> None:
        self.runs[run.id] = run.model_copy(deep=True)

    async def create_step(self, step: StepRecord) -> None:
        self.steps.setdefault(step.executionId, []).append(step.model_copy(deep=True))

    async def update_step(self, step: StepRecord) -> None:
        steps = self.steps.setdefault(step.executionId, [])
        for index, existing in enumerate(steps):
            if existing.sequence == step.sequence:
                steps[index] = step.model_copy(deep=True)
                return
        steps.append(step.model_copy(deep=True))

    async def record_tool_execution(self, record: ToolExecutionRecord) -> None:
        self.tool_executions.append(record.model_copy(deep=True))


class SQLiteExecutionLedger(ExecutionLedger):
    """
    SQLite persistence for runs, steps and tool executions.

    The schema is created on first use, or eagerly through `initialize()`.
    """

    def __init__(self, db_path: str = "data/executions.db"):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._initialized = False

    async def initialize(self):
        """Initialize database schema"""
        if self._initialized:
            return

        async with aiosqlite.connect(str(self.db_path)) as db:
            await db.execute("""
                CREATE TABLE IF NOT EXISTS workflow_executions (
                    id TEXT PRIMARY KEY,
                    agent_id TEXT NOT NULL,
                    user_id TEXT NOT NULL,
                    status TEXT NOT NULL,
                    input_json TEXT,
                    output_json TEXT,
                    error TEXT,
                    execution_time_ms INTEGER,
                    started_at TIMESTAMP NOT NULL,
                    completed_at TIMESTAMP
                )
            """)

            await db.execute("""
                CREATE TABLE IF NOT EXISTS workflow_execution_steps (
                    execution_id TEXT NOT NULL,
                    sequence INTEGER NOT NULL,
                    node_id TEXT NOT NULL,
                    node_type TEXT NOT NULL,
                    status TEXT NOT NULL,
                    input_json TEXT,
                    output_json TEXT,
                    error TEXT,
                    execution_time_ms INTEGER,
                    started_at TIMESTAMP NOT NULL,
                    completed_at TIMESTAMP,
                    PRIMARY KEY (execution_id, sequence)
                )
            """)

            await db.execute("""
                CREATE TABLE IF NOT EXISTS tool_executions (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    tool_id TEXT NOT NULL,
                    user_id TEXT NOT NULL,
                    status TEXT NOT NULL,
                    input_json TEXT,
                    output_json TEXT,
                    error TEXT,
                    execution_time_ms INTEGER,
                    created_at TIMESTAMP NOT NULL
                )
            """)

            await db.execute("""
                CREATE INDEX IF NOT EXISTS idx_executions_agent
                ON workflow_executions(agent_id, user_id)
            """)
            await db.execute("""
                CREATE INDEX IF NOT EXISTS idx_tool_executions_tool
                ON tool_executions(tool_id)
            """)
            await db.commit()

        self._initialized = True
        logger.info(f"Execution ledger initialized at {self.db_path}")

    @asynccontextmanager
    async def _get_connection(self):
        """Get a database connection; commits when the block exits cleanly"""
        await self.initialize()
        async with aiosqlite.connect(str(self.db_path)) as db:
            db.row_factory = aiosqlite.Row
            yield db
            await db.commit()

    @staticmethod
    def _dump(value: Any) -> Optional[str]:
        return json.dumps(value, default=str) if value is not None else None

    @staticmethod
    def _load(value: Optional[str]) -> Any:
        return json.loads(value) if value else None

    # ----- Runs -----

    async def create_run(self, run: RunRecord) -> None:
        async with self._get_connection() as db:
            await db.execute("""
                INSERT INTO workflow_executions
                (id, agent_id, user_id, status, input_json, started_at)
                VALUES (?, ?, ?, ?, ?, ?)
            """, (
                run.id,
                run.agentId,
                run.userId,
                run.status,
                self._dump(run.input),
                run.startedAt.isoformat(),
            ))

    async def update_run(self, run: RunRecord) -> None:
        async with self._get_connection() as db:
            await db.execute("""
                UPDATE workflow_executions SET
                    status = ?,
                    output_json = ?,
                    error = ?,
                    execution_time_ms = ?,
                    completed_at = ?
                WHERE id = ?
            """, (
                run.status,
                self._dump(run.output),
                run.error,
                run.executionTimeMs,
                run.completedAt.isoformat() if run.completedAt else None,
                run.id,
            ))

    async def get_run(self, run_id: str) -> Optional[RunRecord]:
        async with self._get_connection() as db:
            cursor = await db.execute("SELECT * FROM workflow_executions WHERE id = ?", (run_id,))
            row = await cursor.fetchone()
        if not row:
            return None
        return RunRecord(
            id=row["id"],
            agentId=row["agent_id"],
            userId=row["user_id"],
            status=row["status"],
            input=self._load(row["input_json"]),
            output=self._load(row["output_json"]),
            error=row["error"],
            executionTimeMs=row["execution_time_ms"],
            startedAt=datetime.fromisoformat(row["started_at"]),
            completedAt=datetime.fromisoformat(row["completed_at"]) if row["completed_at"] else None,
        )

    # ----- Steps -----

    async def create_step(self, step: StepRecord) -> None:
        async with self._get_connection() as db:
            await db.execute("""
                INSERT INTO workflow_execution_steps
                (execution_id, sequence, node_id, node_type, status, input_json, started_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
            """, (
                step.executionId,
                step.sequence,
                step.nodeId,
                step.nodeType,
                step.status,
                self._dump(step.input),
                step.startedAt.isoformat(),
            ))

    async def update_step(self, step: StepRecord) -> None:
        async with self._get_connection() as db:
            await db.execute("""
                UPDATE workflow_execution_steps SET
                    status = ?,
                    output_json = ?,
                    error = ?,
                    execution_time_ms = ?,
                    completed_at = ?
                WHERE execution_id = ? AND sequence = ?
            """, (
                step.status,
                self._dump(step.output),
                step.error,
                step.executionTimeMs,
                step.completedAt.isoformat() if step.completedAt else None,
                step.executionId,
                step.sequence,
            ))

    async def list_steps(self, execution_id: str) -> List[StepRecord]:
        async with self._get_connection() as db:
            cursor = await db.execute("""
                SELECT * FROM workflow_execution_steps
                WHERE execution_id = ?
                ORDER BY sequence
            """, (execution_id,))
            rows = await cursor.fetchall()
        return [
            StepRecord(
                executionId=row["execution_id"],
                sequence=row["sequence"],
                nodeId=row["node_id"],
                nodeType=row["node_type"],
                status=row["status"],
                input=self._load(row["input_json"]),
                output=self._load(row["output_json"]),
                error=row["error"],
                executionTimeMs=row["execution_time_ms"],
                startedAt=datetime.fromisoformat(row["started_at"]),
                completedAt=datetime.fromisoformat(row["completed_at"]) if row["completed_at"] else None,
            )
            for row in rows
        ]

    # ----- Tools -----

    async def record_tool_execution(self, record: ToolExecutionRecord) -> None:
        async with self._get_connection() as db:
            await db.execute("""
                INSERT INTO tool_executions
                (tool_id, user_id, status, input_json, output_json, error, execution_time_ms, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                record.toolId,
                record.userId,
                record.status,
                self._dump(record.input),
                self._dump(record.output),
                record.error,
                record.executionTimeMs,
                record.createdAt.isoformat(),
            ))

    async def list_tool_executions(self, tool_id: str) -> List[Dict[str, Any]]:
        async with self._get_connection() as db:
            cursor = await db.execute("""
                SELECT * FROM tool_executions WHERE tool_id = ? ORDER BY id
            """, (tool_id,))
            rows = await cursor.fetchall()
        return [dict(row) for row in rows]
