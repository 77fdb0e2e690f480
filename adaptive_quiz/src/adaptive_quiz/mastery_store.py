"""
Mastery Store

Reads a learner's stored mastery for a topic. The Supabase store queries the
user_mastery table; the in-memory store backs tests and local runs without a
database.
"""

import asyncio
import logging
from typing import Dict, Optional, Tuple

from adaptive_quiz.errors import MasteryStoreFailure
from adaptive_quiz.settings import DEFAULT_MASTERY_TABLE

logger = logging.getLogger(__name__)


class SupabaseMasteryStore:
    """
    Mastery lookup backed by Supabase.

    Only reads; writing updated mastery is a side effect of the evaluator
    function, not of the quiz session.
    """

    def __init__(self, supabase_client, table: str = DEFAULT_MASTERY_TABLE):
        """
        Initialize SupabaseMasteryStore.

        Args:
            supabase_client: Supabase client instance
            table: Table holding (user_id, topic_id, mastery_level) rows
        """
        self.supabase = supabase_client
        self.table = table

    def _query(self, learner_id: str, topic_id: str):
        return self.supabase.table(self.table) \
            .select('mastery_level') \
            .eq('user_id', learner_id) \
            .eq('topic_id', topic_id) \
            .limit(1) \
            .execute()

    async def read_mastery(self, learner_id: str, topic_id: str) -> Optional[float]:
        """
        Read stored mastery.

        Args:
            learner_id: User UUID
            topic_id: Topic identifier

        Returns:
            Stored mastery_level, or None if the learner has no record

        Raises:
            MasteryStoreFailure: If the query fails
        """
        try:
            result = await asyncio.to_thread(self._query, learner_id, topic_id)
        except Exception as e:
            logger.error(f"❌ [MasteryStore] Error reading mastery for topic {topic_id}: {e}")
            raise MasteryStoreFailure(f"Could not read mastery: {e}") from e

        if not result.data:
            logger.debug(f"📚 [MasteryStore] No mastery record for topic {topic_id}")
            return None

        value = result.data[0].get("mastery_level")
        if value is None:
            return None
        try:
            return float(value)
        except (TypeError, ValueError) as e:
            raise MasteryStoreFailure(f"Stored mastery is not a number: {value!r}") from e


class InMemoryMasteryStore:
    """Dictionary-backed mastery store."""

    def __init__(self, records: Optional[Dict[Tuple[str, str], float]] = None):
        self._records: Dict[Tuple[str, str], float] = dict(records or {})

    def set_mastery(self, learner_id: str, topic_id: str, mastery: float):
        self._records[(learner_id, topic_id)] = mastery

    async def read_mastery(self, learner_id: str, topic_id: str) -> Optional[float]:
        return self._records.get((learner_id, topic_id))
