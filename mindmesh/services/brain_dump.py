"""Brain dump upload, processing and summaries."""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Dict, List, Optional

from mindmesh.database.brain_dump_repository import BrainDumpRepository
from mindmesh.integrations.openai_client import AIUnavailableError, OpenAIClient
from mindmesh.models.brain_dump import BrainDumpCategory, BrainDumpEntry
from mindmesh.models.constants import BRAIN_DUMP_BATCH_DELAY_SEC, BRAIN_DUMP_BATCH_SIZE
from mindmesh.services.ai_handlers import classify_brain_dump

logger = logging.getLogger(__name__)


def sync_entries(repo: BrainDumpRepository, user_id: str, entries: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Upsert client-captured entries by id.

    Returns:
        {"synced": count, "errors": [message per failed entry]}
    """
    result: Dict[str, Any] = {"synced": 0, "errors": []}
    for entry in entries:
        try:
            repo.upsert(
                user_id=user_id,
                entry_id=entry["id"],
                content=entry["content"],
                entry_type=entry.get("type") or "text",
                timestamp=entry["timestamp"],
                processed=bool(entry.get("processed")),
                ai_result=entry.get("ai_result"),
            )
            result["synced"] += 1
        except Exception as e:
            logger.warning(f"Failed to sync brain dump {entry.get('id')}: {type(e).__name__}")
            result["errors"].append(f"Failed to sync entry: {entry.get('content', '')[:50]}...")
    return result


def organize_by_category(entries: List[BrainDumpEntry]) -> Dict[str, List[BrainDumpEntry]]:
    """Group processed entries under actions, notes and reflections."""
    processed = [e for e in entries if e.processed and e.ai_result]
    return {
        "actions": [e for e in processed if e.ai_result.get("category") == BrainDumpCategory.ACTION.value],
        "notes": [e for e in processed if e.ai_result.get("category") == BrainDumpCategory.NOTE.value],
        "reflections": [e for e in processed if e.ai_result.get("category") == BrainDumpCategory.REFLECTION.value],
    }


def entry_stats(entries: List[BrainDumpEntry]) -> Dict[str, int]:
    total = len(entries)
    processed = len([e for e in entries if e.processed])
    return {
        "total": total,
        "processed": processed,
        "unprocessed": total - processed,
        "processing_rate": round(processed / total * 100) if total else 0,
    }


class BrainDumpProcessor:
    """Classifies a user's unprocessed entries in small batches.

    Classification calls inside a batch run concurrently; results are written
    back one by one on the caller's session. Entries whose provider call fails
    stay unprocessed for the next run.
    """

    def __init__(
        self,
        repo: BrainDumpRepository,
        ai: OpenAIClient,
        user_id: str,
        sleep: Callable[[float], None] = time.sleep,
        batch_size: int = BRAIN_DUMP_BATCH_SIZE,
        batch_delay: float = BRAIN_DUMP_BATCH_DELAY_SEC,
    ):
        self.repo = repo
        self.ai = ai
        self.user_id = user_id
        self.sleep = sleep
        self.batch_size = batch_size
        self.batch_delay = batch_delay

    def _classify(self, entry: BrainDumpEntry) -> Optional[Dict[str, Any]]:
        try:
            return classify_brain_dump(self.ai, entry.content, entry.entry_type)
        except AIUnavailableError as e:
            logger.warning(f"Leaving brain dump {entry.id} unprocessed: {e}")
            return None

    def process_unprocessed(self) -> Dict[str, Any]:
        """Process every unprocessed entry of the user, oldest first.

        Returns:
            {"processed": count, "errors": [message per failed entry]}
        """
        entries = self.repo.list_unprocessed(self.user_id)
        result: Dict[str, Any] = {"processed": 0, "errors": []}

        for start in range(0, len(entries), self.batch_size):
            batch = entries[start:start + self.batch_size]
            with ThreadPoolExecutor(max_workers=len(batch)) as pool:
                classified = list(pool.map(self._classify, batch))

            for entry, ai_result in zip(batch, classified):
                if ai_result is None:
                    result["errors"].append(f"Provider unavailable for entry {entry.id}")
                    continue
                try:
                    self.repo.mark_processed(self.user_id, entry.id, ai_result)
                    result["processed"] += 1
                except Exception as e:
                    result["errors"].append(f"Failed to save entry {entry.id}: {type(e).__name__}")

            if start + self.batch_size < len(entries):
                self.sleep(self.batch_delay)

        logger.info(f"Processed {result['processed']} of {len(entries)} brain dumps for user {self.user_id}")
        return result

