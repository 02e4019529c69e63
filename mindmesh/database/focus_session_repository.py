"""Repository for focus sessions."""

import logging
import uuid
from datetime import datetime
from typing import List, Optional
from sqlalchemy.orm import Session
from sqlalchemy import desc

from mindmesh.models.focus_session import FocusSession
from mindmesh.database.models import FocusSessionDB

logger = logging.getLogger(__name__)


class FocusSessionRepository:
    def __init__(self, db: Session):
        self.db = db

    def start(
        self,
        user_id: str,
        *,
        task_id: Optional[str] = None,
        planned_minutes: int = 25,
        started_at: Optional[datetime] = None,
    ) -> FocusSession:
        row = FocusSessionDB(
            id=str(uuid.uuid4()),
            user_id=user_id,
            task_id=task_id,
            started_at=started_at or datetime.utcnow(),
            planned_minutes=planned_minutes,
            completed=False,
        )
        try:
            self.db.add(row)
            self.db.commit()
            self.db.refresh(row)
            return row.to_pydantic()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to start focus session: {type(e).__name__}: {str(e)}")
            raise

    def end(
        self,
        user_id: str,
        session_id: str,
        *,
        completed: bool,
        notes: Optional[str] = None,
        ended_at: Optional[datetime] = None,
    ) -> FocusSession:
        row = self.db.query(FocusSessionDB).filter(
            FocusSessionDB.id == session_id,
            FocusSessionDB.user_id == user_id,
        ).first()
        if not row:
            raise ValueError(f"Focus session {session_id} not found")
        if row.ended_at is not None:
            raise ValueError(f"Focus session {session_id} already ended")
        try:
            row.ended_at = ended_at or datetime.utcnow()
            row.completed = completed
            row.notes = notes
            self.db.commit()
            self.db.refresh(row)
            return row.to_pydantic()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to end focus session {session_id}: {type(e).__name__}: {str(e)}")
            raise

    def list_recent(self, user_id: str, limit: int = 50) -> List[FocusSession]:
        rows = self.db.query(FocusSessionDB).filter(
            FocusSessionDB.user_id == user_id,
        ).order_by(desc(FocusSessionDB.started_at)).limit(limit).all()
        return [r.to_pydantic() for r in rows]
