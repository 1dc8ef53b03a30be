"""
Request schemas for operator-submitted alert data.

Validated before any store mutation; a failure surfaces as HTTP 400.
"""
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from models.enums import AlertSeverity, AlertType


class ManualAlertRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    title: str = Field(min_length=1, max_length=200)
    description: str = Field(min_length=1, max_length=1000)
    type: AlertType
    severity: AlertSeverity = AlertSeverity.WARNING
    location: Optional[str] = None
    device_id: Optional[str] = Field(default=None, alias="deviceId")
    metadata: dict = Field(default_factory=dict)


class LifecycleRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(default="system", alias="userId", min_length=1)
    notes: Optional[str] = Field(default=None, max_length=2000)
