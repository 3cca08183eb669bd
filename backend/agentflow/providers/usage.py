"""
LLM Usage Tracking
Records token usage and cost per user and model
"""

import logging
import os
from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional

import aiosqlite

from .models import UsageRecord

logger = logging.getLogger(__name__)


class UsageTracker(ABC):
    """Write side used by provider adapters; failures must not break the call"""

    @abstractmethod
    async def record_usage(self, record: UsageRecord) -> bool:
        raise NotImplementedError

    @abstractmethod
    async def get_user_usage(
        self,
        user_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> List[UsageRecord]:
        raise NotImplementedError


class InMemoryUsageTracker(UsageTracker):

    def __init__(self):
        self.records: List[UsageRecord] = []

    async def record_usage(self, record: UsageRecord) -> bool:
        self.records.append(record)
        return True

    async def get_user_usage(self, user_id, start=None, end=None) -> List[UsageRecord]:
        rows = [
            r for r in self.records
            if r.userId == user_id
            and (start is None or r.timestamp >= start)
            and (end is None or r.timestamp <= end)
        ]
        return sorted(rows, key=lambda r: r.timestamp, reverse=True)


class SQLiteUsageTracker(UsageTracker):
    """Tracks usage in a SQLite table"""

    def __init__(self, db_path: str = None):
        """Initialize the tracker with database path"""
        if db_path is None:
            db_path = os.environ.get("USAGE_DB_PATH", "/tmp/agentflow_usage.db")

        self.db_path = db_path
        self._initialized = False
        self._ensure_db_dir()

    def _ensure_db_dir(self):
        db_dir = os.path.dirname(self.db_path)
        if db_dir and not os.path.exists(db_dir):
            os.makedirs(db_dir, exist_ok=True)

    async def initialize(self):
        if self._initialized:
            return

        async with aiosqlite.connect(self.db_path) as db:
            await db.execute('''
            CREATE TABLE IF NOT EXISTS llm_usage (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                created_at TEXT NOT NULL,
                user_id TEXT NOT NULL,
                provider TEXT NOT NULL,
                model TEXT NOT NULL,
                prompt_tokens INTEGER NOT NULL,
                completion_tokens INTEGER NOT NULL,
                total_tokens INTEGER NOT NULL,
                cost REAL NOT NULL
            )
            ''')
            await db.execute('CREATE INDEX IF NOT EXISTS idx_llm_usage_user ON llm_usage(user_id, created_at)')
            await db.commit()

        self._initialized = True
        logger.info(f"Usage tracker initialized with database at {self.db_path}")

    async def record_usage(self, record: UsageRecord) -> bool:
        """
        Record one LLM call.

        Returns:
            bool: True if stored, False if the write failed
        """
        try:
            await self.initialize()
            async with aiosqlite.connect(self.db_path) as db:
                await db.execute('''
                INSERT INTO llm_usage
                (created_at, user_id, provider, model, prompt_tokens, completion_tokens, total_tokens, cost)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                ''', (record.timestamp.isoformat(), record.userId, record.provider, record.model,
                      record.promptTokens, record.completionTokens, record.totalTokens, record.cost))
                await db.commit()
            logger.debug(f"Recorded usage: {record.totalTokens} tokens for model {record.model}")
            return True
        except aiosqlite.Error as e:
            logger.error(f"Error recording usage: {e}")
            return False

    async def get_user_usage(self, user_id, start=None, end=None) -> List[UsageRecord]:
        query = "SELECT * FROM llm_usage WHERE user_id = ?"
        params: list = [user_id]
        if start:
            query += " AND created_at >= ?"
            params.append(start.isoformat())
        if end:
            query += " AND created_at <= ?"
            params.append(end.isoformat())
        query += " ORDER BY created_at DESC"

        await self.initialize()
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(query, params)
            rows = await cursor.fetchall()

        return [
            UsageRecord(
                userId=row["user_id"],
                provider=row["provider"],
                model=row["model"],
                promptTokens=row["prompt_tokens"],
                completionTokens=row["completion_tokens"],
                totalTokens=row["total_tokens"],
                cost=row["cost"],
                timestamp=datetime.fromisoformat(row["created_at"]),
            )
            for row in rows
        ]
