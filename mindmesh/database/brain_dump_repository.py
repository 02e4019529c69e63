"""Repository for brain dump entries."""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional
from sqlalchemy.orm import Session
from sqlalchemy import asc, desc

from mindmesh.models.brain_dump import BrainDumpEntry
from mindmesh.database.models import BrainDumpDB

logger = logging.getLogger(__name__)


class BrainDumpRepository:
    """Repository for BrainDumpEntry database operations."""

    def __init__(self, db: Session):
        self.db = db

    def upsert(
        self,
        user_id: str,
        entry_id: str,
        content: str,
        entry_type: str,
        timestamp: datetime,
        processed: bool = False,
        ai_result: Optional[Dict[str, Any]] = None,
    ) -> BrainDumpEntry:
        """Insert or overwrite an entry by its client-generated id."""
        row = self.db.query(BrainDumpDB).filter(BrainDumpDB.id == entry_id).first()
        if row is not None and row.user_id != user_id:
            raise ValueError(f"Brain dump {entry_id} belongs to another user")

        if row is None:
            row = BrainDumpDB(
                id=entry_id,
                user_id=user_id,
                created_at=datetime.utcnow(),
            )
            self.db.add(row)
        row.content = content
        row.entry_type = entry_type
        row.timestamp = timestamp
        row.processed = processed
        row.ai_result = ai_result

        try:
            self.db.commit()
            self.db.refresh(row)
            return row.to_pydantic()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to upsert brain dump {entry_id}: {type(e).__name__}: {str(e)}")
            raise

    def get(self, user_id: str, entry_id: str) -> Optional[BrainDumpEntry]:
        row = self.db.query(BrainDumpDB).filter(
            BrainDumpDB.id == entry_id,
            BrainDumpDB.user_id == user_id,
        ).first()
        return row.to_pydantic() if row else None

    def list_since(self, user_id: str, since: datetime, processed_only: bool = False) -> List[BrainDumpEntry]:
        query = self.db.query(BrainDumpDB).filter(
            BrainDumpDB.user_id == user_id,
            BrainDumpDB.created_at >= since,
        )
        if processed_only:
            query = query.filter(BrainDumpDB.processed.is_(True))
        return [r.to_pydantic() for r in query.order_by(desc(BrainDumpDB.created_at)).all()]

    def list_unprocessed(self, user_id: str) -> List[BrainDumpEntry]:
        """Get unprocessed entries in capture order."""
        rows = self.db.query(BrainDumpDB).filter(
            BrainDumpDB.user_id == user_id,
            BrainDumpDB.processed.is_(False),
        ).order_by(asc(BrainDumpDB.timestamp)).all()
        return [r.to_pydantic() for r in rows]

    def mark_processed(self, user_id: str, entry_id: str, ai_result: Dict[str, Any]) -> BrainDumpEntry:
        row = self.db.query(BrainDumpDB).filter(
            BrainDumpDB.id == entry_id,
            BrainDumpDB.user_id == user_id,
        ).first()
        if not row:
            raise ValueError(f"Brain dump {entry_id} not found")
        try:
            row.processed = True
            row.ai_result = ai_result
            self.db.commit()
            self.db.refresh(row)
            return row.to_pydantic()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to mark brain dump {entry_id} processed: {type(e).__name__}: {str(e)}")
            raise
