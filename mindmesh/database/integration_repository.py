"""Repository for per-user integration credentials and settings.

Security notes:
- Access and refresh tokens are secrets: store encrypted-at-rest and never log raw values.
- Callers must ensure decrypted values never reach API responses or logs.
"""

import logging
import os
from datetime import datetime
from typing import Any, Dict, List, Optional

from cryptography.fernet import Fernet, InvalidToken
from sqlalchemy.orm import Session
from sqlalchemy import asc

from mindmesh.database.models import IntegrationDB, SyncMappingDB, enum_to_value
from mindmesh.models.integration import Integration

logger = logging.getLogger(__name__)


def _require_fernet() -> Fernet:
    key = os.getenv("TOKEN_ENCRYPTION_KEY", "").strip()
    if not key:
        raise RuntimeError(
            "TOKEN_ENCRYPTION_KEY is not set. "
            "Set it to a Fernet key (base64 urlsafe 32-byte) to enable encrypted token storage."
        )
    return Fernet(key)


def encrypt_secret(raw: str) -> str:
    f = _require_fernet()
    return f.encrypt(raw.encode("utf-8")).decode("utf-8")


def decrypt_secret(enc: str) -> str:
    f = _require_fernet()
    try:
        return f.decrypt(enc.encode("utf-8")).decode("utf-8")
    except InvalidToken as e:
        raise RuntimeError("Stored token could not be decrypted; TOKEN_ENCRYPTION_KEY may be wrong.") from e


class IntegrationRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_row(self, user_id: str, integration_type: str) -> Optional[IntegrationDB]:
        return (
            self.db.query(IntegrationDB)
            .filter(
                IntegrationDB.user_id == user_id,
                IntegrationDB.integration_type == enum_to_value(integration_type),
            )
            .first()
        )

    def get_row_by_id(self, user_id: str, integration_id: str) -> Optional[IntegrationDB]:
        return (
            self.db.query(IntegrationDB)
            .filter(IntegrationDB.id == integration_id, IntegrationDB.user_id == user_id)
            .first()
        )

    def list_for_user(self, user_id: str) -> List[Integration]:
        rows = (
            self.db.query(IntegrationDB)
            .filter(IntegrationDB.user_id == user_id)
            .order_by(asc(IntegrationDB.created_at))
            .all()
        )
        return [r.to_pydantic() for r in rows]

    def list_active_rows(self, user_id: str, integration_type: Optional[str] = None) -> List[IntegrationDB]:
        query = self.db.query(IntegrationDB).filter(
            IntegrationDB.user_id == user_id,
            IntegrationDB.is_active.is_(True),
        )
        if integration_type:
            query = query.filter(IntegrationDB.integration_type == enum_to_value(integration_type))
        return query.order_by(asc(IntegrationDB.created_at)).all()

    def list_user_ids_with_active(self) -> List[str]:
        rows = (
            self.db.query(IntegrationDB.user_id)
            .filter(IntegrationDB.is_active.is_(True))
            .distinct()
            .all()
        )
        return [r.user_id for r in rows]

    def upsert_tokens(
        self,
        user_id: str,
        integration_type: str,
        access_token: str,
        *,
        refresh_token: Optional[str] = None,
        expires_at: Optional[datetime] = None,
        integration_data: Optional[Dict[str, Any]] = None,
    ) -> Integration:
        """Store freshly exchanged tokens and (re)activate the integration."""
        now = datetime.utcnow()
        row = self.get_row(user_id, integration_type)
        if row is None:
            row = IntegrationDB(
                user_id=user_id,
                integration_type=enum_to_value(integration_type),
                sync_rules={},
                created_at=now,
            )
            self.db.add(row)
        row.access_token_encrypted = encrypt_secret(access_token)
        # Providers omit the refresh token on re-consent; keep the previous one.
        if refresh_token:
            row.refresh_token_encrypted = encrypt_secret(refresh_token)
        row.token_expires_at = expires_at
        row.integration_data = dict(integration_data or {})
        row.is_active = True
        row.updated_at = now

        try:
            self.db.commit()
            self.db.refresh(row)
            logger.debug(f"Stored tokens for {row.integration_type} integration {row.id}")
            return row.to_pydantic()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to store {enum_to_value(integration_type)} tokens: {type(e).__name__}")
            raise

    def update_access_token(self, row: IntegrationDB, access_token: str, expires_at: Optional[datetime]) -> None:
        row.access_token_encrypted = encrypt_secret(access_token)
        row.token_expires_at = expires_at
        row.updated_at = datetime.utcnow()
        self.db.commit()

    def access_token(self, row: IntegrationDB) -> Optional[str]:
        return decrypt_secret(row.access_token_encrypted) if row.access_token_encrypted else None

    def refresh_token(self, row: IntegrationDB) -> Optional[str]:
        return decrypt_secret(row.refresh_token_encrypted) if row.refresh_token_encrypted else None

    def mark_synced(self, row: IntegrationDB, when: Optional[datetime] = None) -> None:
        try:
            row.last_sync_at = when or datetime.utcnow()
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to stamp last_sync_at on integration {row.id}: {type(e).__name__}: {str(e)}")
            raise

    def update_sync_rules(self, user_id: str, integration_id: str, sync_rules: Dict[str, Any]) -> Integration:
        row = self.get_row_by_id(user_id, integration_id)
        if row is None:
            raise ValueError(f"Integration {integration_id} not found")
        row.sync_rules = dict(sync_rules)
        row.updated_at = datetime.utcnow()
        self.db.commit()
        self.db.refresh(row)
        return row.to_pydantic()

    def deactivate(self, user_id: str, integration_id: str) -> int:
        """Mark an integration inactive and delete its mappings.

        Returns number of mapping rows deleted.
        """
        row = self.get_row_by_id(user_id, integration_id)
        if row is None:
            raise ValueError(f"Integration {integration_id} not found")
        try:
            row.is_active = False
            row.updated_at = datetime.utcnow()
            affected = (
                self.db.query(SyncMappingDB)
                .filter(
                    SyncMappingDB.user_id == user_id,
                    SyncMappingDB.integration_type == row.integration_type,
                )
                .delete(synchronize_session=False)
            )
            self.db.commit()
            return int(affected)
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to disconnect integration {integration_id}: {type(e).__name__}: {str(e)}")
            raise
