"""Pydantic schemas for runtime settings."""

from typing import Dict, Optional

from pydantic import BaseModel, Field


class SettingResponse(BaseModel):
    """A setting as shown to administrators. Encrypted values are masked."""

    key: str
    value: Optional[str] = None
    group: str
    label: str
    description: Optional[str] = None
    encrypted: bool = False


class SettingsBulkUpdate(BaseModel):
    """Key/value pairs to update. Unknown keys and masked placeholders are ignored."""

    settings: Dict[str, Optional[str]] = Field(
        ...,
        examples=[{"smtp_host": "smtp.example.com", "smtp_port": "587"}],
    )
