"""
API request/response schemas.

Pydantic models for the /api/generate boundary. Field names are camelCase
on the wire and snake_case in Python.
"""

from typing import Any, Dict, Optional

from pydantic import AliasChoices, Field

from matchmaker.domain.models.session import WireModel


class ActionRequest(WireModel):
    """One client action against a session.

    ``filters`` is also accepted under its older wire name ``dropdowns``.
    """

    action: Optional[str] = Field(default=None, description="Defaults to send_message")
    session_id: Optional[str] = Field(default=None, max_length=128)
    message: Optional[str] = Field(default=None, max_length=5000)
    feedback: Optional[str] = Field(default=None, max_length=5000)
    filters: Optional[Dict[str, Any]] = Field(
        default=None, validation_alias=AliasChoices("filters", "dropdowns")
    )


class ErrorBody(WireModel):
    type: str
    message: str


class ErrorResponse(WireModel):
    error: ErrorBody
