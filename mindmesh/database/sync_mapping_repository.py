"""Repository for sync mappings between local tasks and external items."""

import logging
import uuid
from datetime import datetime
from typing import List, Optional
from sqlalchemy.orm import Session

from mindmesh.database.models import SyncMappingDB, TaskDB, enum_to_value
from mindmesh.models.integration import SyncDirection, SyncMapping
from mindmesh.models.task import Task

logger = logging.getLogger(__name__)


class SyncMappingRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_by_external_id(self, user_id: str, external_id: str, integration_type: str) -> Optional[SyncMapping]:
        row = self.db.query(SyncMappingDB).filter(
            SyncMappingDB.user_id == user_id,
            SyncMappingDB.external_id == external_id,
            SyncMappingDB.integration_type == enum_to_value(integration_type),
        ).first()
        return row.to_pydantic() if row else None

    def get_for_task(self, task_id: str, integration_type: str) -> Optional[SyncMapping]:
        row = self.db.query(SyncMappingDB).filter(
            SyncMappingDB.task_id == task_id,
            SyncMappingDB.integration_type == enum_to_value(integration_type),
        ).first()
        return row.to_pydantic() if row else None

    def list_for_user(self, user_id: str, integration_type: Optional[str] = None) -> List[SyncMapping]:
        query = self.db.query(SyncMappingDB).filter(SyncMappingDB.user_id == user_id)
        if integration_type:
            query = query.filter(SyncMappingDB.integration_type == enum_to_value(integration_type))
        return [r.to_pydantic() for r in query.all()]

    def create_task_with_mapping(
        self,
        task: Task,
        external_id: str,
        integration_type: str,
        sync_direction: SyncDirection = SyncDirection.IMPORT,
    ) -> Task:
        """Insert an imported task and its mapping row in one transaction.

        Raises:
            IntegrityError: If the external item is already mapped (nothing is written).
        """
        task_db = TaskDB.from_pydantic(task)
        mapping_db = SyncMappingDB(
            id=str(uuid.uuid4()),
            user_id=task.user_id,
            task_id=task.id,
            external_id=external_id,
            integration_type=enum_to_value(integration_type),
            sync_direction=enum_to_value(sync_direction),
            created_at=datetime.utcnow(),
        )
        try:
            self.db.add(task_db)
            # Task row must exist before the FK-bearing mapping row.
            self.db.flush()
            self.db.add(mapping_db)
            self.db.commit()
            self.db.refresh(task_db)
            logger.debug(f"Imported {enum_to_value(integration_type)} item {external_id} as task {task.id}")
            return task_db.to_pydantic()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to import {enum_to_value(integration_type)} item {external_id}: {type(e).__name__}: {str(e)}")
            raise
