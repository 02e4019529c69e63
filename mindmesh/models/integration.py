"""Integration and sync mapping data models for MindMesh."""

from datetime import datetime
from typing import Any, Dict, Optional
from enum import Enum
from pydantic import BaseModel, Field


class IntegrationType(str, Enum):
    """External systems MindMesh can sync with."""
    GOOGLE_CALENDAR = "google_calendar"
    NOTION = "notion"


class SyncDirection(str, Enum):
    """Direction recorded on a mapping row or requested for a sync run."""
    IMPORT = "import"
    EXPORT = "export"
    BIDIRECTIONAL = "bidirectional"


class Integration(BaseModel):
    """A connected external account.

    Tokens are intentionally absent: they live encrypted in the database row
    and are only decrypted by the sync and OAuth code paths.
    """
    
    id: str = Field(..., description="Unique integration identifier (UUID v4)")
    user_id: str = Field(..., description="User ID who owns this integration")
    integration_type: IntegrationType = Field(..., description="External system")
    is_active: bool = Field(True, description="Inactive integrations are skipped by sync")
    last_sync_at: Optional[datetime] = Field(None, description="Last sync attempt")
    token_expires_at: Optional[datetime] = Field(None, description="Access token expiry")
    sync_rules: Dict[str, Any] = Field(default_factory=dict, description="Import/export toggles and filters")
    integration_data: Dict[str, Any] = Field(default_factory=dict, description="Provider metadata (scope, workspace, ...)")
    created_at: datetime = Field(..., description="Connection timestamp")
    updated_at: datetime = Field(..., description="Last update timestamp")
    
    class Config:
        """Pydantic configuration."""
        use_enum_values = True


class SyncMapping(BaseModel):
    """Binding between a local task and an external item."""
    
    id: str = Field(..., description="Unique mapping identifier (UUID v4)")
    user_id: str = Field(..., description="User ID who owns this mapping")
    task_id: str = Field(..., description="Local task ID")
    external_id: str = Field(..., description="Identifier in the external system")
    integration_type: IntegrationType = Field(..., description="External system")
    sync_direction: SyncDirection = Field(SyncDirection.IMPORT, description="How the mapping was created")
    created_at: datetime = Field(..., description="Mapping creation timestamp")
    
    class Config:
        """Pydantic configuration."""
        use_enum_values = True
