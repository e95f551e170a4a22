"""
Google OAuth / Sheets / Drive response schemas.
"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class RefreshedToken(BaseModel):
    """Result of exchanging a refresh token for a new access token."""
    access_token: str
    expires_at: datetime


class GoogleTokens(BaseModel):
    """Authorization-code exchange result."""
    access_token: str
    refresh_token: Optional[str] = None
    expires_at: datetime
    scope: str = ""


class SpreadsheetFile(BaseModel):
    id: str
    name: str = ""


class AppendResult(BaseModel):
    """values.append response. `updates` is absent on some responses."""
    spreadsheet_id: str = ""
    updated_range: str = ""
    updated_rows: int = 0


class SheetValues(BaseModel):
    """values.get response. Missing `values` => empty grid."""
    range: str = ""
    values: list[list[str]] = Field(default_factory=list)
