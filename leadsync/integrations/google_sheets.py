"""
Google Sheets destination - appends mapped lead rows to a spreadsheet tab.

Talks to the Sheets v4 / Drive v3 REST APIs directly with a delegated
OAuth access token; refresh is exposed so the pipeline can renew an
expired token and persist the new one.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional
from urllib.parse import quote, urlencode

import httpx

from leadsync.integrations.provider_base import ProviderClient
from leadsync.schemas.google_payloads import (
    AppendResult,
    GoogleTokens,
    RefreshedToken,
    SheetValues,
    SpreadsheetFile,
)
from leadsync.utils.errors import GoogleApiError

logger = logging.getLogger(__name__)

AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
TOKEN_URL = "https://oauth2.googleapis.com/token"
USERINFO_URL = "https://www.googleapis.com/oauth2/v2/userinfo"
SHEETS_URL = "https://sheets.googleapis.com/v4/spreadsheets"
DRIVE_FILES_URL = "https://www.googleapis.com/drive/v3/files"

OAUTH_SCOPES = [
    "https://www.googleapis.com/auth/spreadsheets",
    "https://www.googleapis.com/auth/drive.readonly",
    "https://www.googleapis.com/auth/userinfo.email",
]

# Google access tokens live one hour when expires_in is absent
DEFAULT_TOKEN_LIFETIME_SECONDS = 3600


def column_letter(index: int) -> str:
    """1-based column index to A1 letters (1 -> A, 27 -> AA)."""
    letters = ""
    while index > 0:
        index, rem = divmod(index - 1, 26)
        letters = chr(65 + rem) + letters
    return letters


def sheet_range(sheet_name: str, cells: str) -> str:
    """A1 range on a named tab, quoting the tab name."""
    escaped = sheet_name.replace("'", "''")
    return f"'{escaped}'!{cells}"


class GoogleSheetsClient(ProviderClient):
    """Google Sheets/Drive/OAuth client. One instance per process, injected at startup."""

    error_class = GoogleApiError

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        redirect_uri: str = "",
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        super().__init__(http_client)
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri

    @classmethod
    def from_settings(cls, settings, http_client: Optional[httpx.AsyncClient] = None) -> "GoogleSheetsClient":
        return cls(
            client_id=settings.google_client_id,
            client_secret=settings.google_client_secret,
            redirect_uri=settings.google_redirect_uri,
            http_client=http_client,
        )

    def _extract_error_message(self, payload: dict) -> Optional[str]:
        if not isinstance(payload, dict):
            return None
        error = payload.get("error")
        if isinstance(error, dict):
            return error.get("message")
        return payload.get("error_description") or error

    @staticmethod
    def _auth(access_token: str) -> dict:
        return {"Authorization": f"Bearer {access_token}"}

    @staticmethod
    def _expiry(data: dict) -> datetime:
        lifetime = data.get("expires_in") or DEFAULT_TOKEN_LIFETIME_SECONDS
        return datetime.now(timezone.utc) + timedelta(seconds=int(lifetime))

    # --- OAuth ---

    def get_auth_url(self, state: str) -> str:
        params = urlencode({
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "access_type": "offline",
            "prompt": "consent",
            "scope": " ".join(OAUTH_SCOPES),
            "state": state,
        })
        return f"{AUTH_URL}?{params}"

    async def exchange_code(self, code: str) -> GoogleTokens:
        data = await self._request(
            "POST",
            TOKEN_URL,
            "Failed to exchange Google code",
            data={
                "grant_type": "authorization_code",
                "code": code,
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "redirect_uri": self.redirect_uri,
            },
        )
        return GoogleTokens(
            access_token=data["access_token"],
            refresh_token=data.get("refresh_token"),
            expires_at=self._expiry(data),
            scope=data.get("scope", ""),
        )

    async def refresh_access_token(self, refresh_token: str) -> RefreshedToken:
        """Exchange a refresh token for a new access token. The refresh token is not rotated."""
        data = await self._request(
            "POST",
            TOKEN_URL,
            "Failed to refresh Google access token",
            data={
                "grant_type": "refresh_token",
                "refresh_token": refresh_token,
                "client_id": self.client_id,
                "client_secret": self.client_secret,
            },
        )
        if not data.get("access_token"):
            raise GoogleApiError("Token refresh returned no access_token")
        return RefreshedToken(access_token=data["access_token"], expires_at=self._expiry(data))

    async def get_user_email(self, access_token: str) -> str:
        data = await self._request(
            "GET", USERINFO_URL, "Failed to fetch Google user info",
            headers=self._auth(access_token),
        )
        return data.get("email") or ""

    # --- Drive ---

    async def list_spreadsheets(self, access_token: str) -> list[SpreadsheetFile]:
        """Most recently modified spreadsheets visible to the account (max 50)."""
        data = await self._request(
            "GET",
            DRIVE_FILES_URL,
            "Failed to list spreadsheets",
            headers=self._auth(access_token),
            params={
                "q": "mimeType='application/vnd.google-apps.spreadsheet'",
                "fields": "files(id,name)",
                "pageSize": 50,
                "orderBy": "modifiedTime desc",
            },
        )
        return [SpreadsheetFile.model_validate(f) for f in data.get("files") or []]

    # --- Sheets ---

    async def get_sheet_names(self, access_token: str, spreadsheet_id: str) -> list[str]:
        data = await self._request(
            "GET",
            f"{SHEETS_URL}/{spreadsheet_id}",
            "Failed to read spreadsheet",
            headers=self._auth(access_token),
            params={"fields": "sheets.properties.title"},
        )
        names = [
            (s.get("properties") or {}).get("title") or ""
            for s in data.get("sheets") or []
        ]
        return [n for n in names if n]

    async def get_sheet_headers(
        self, access_token: str, spreadsheet_id: str, sheet_name: str,
    ) -> list[str]:
        """Row 1 of the tab. Empty tab => []."""
        target = sheet_range(sheet_name, "1:1")
        data = await self._request(
            "GET",
            f"{SHEETS_URL}/{spreadsheet_id}/values/{quote(target, safe='')}",
            "Failed to read sheet headers",
            headers=self._auth(access_token),
        )
        values = SheetValues.model_validate(data).values
        return [str(v) for v in values[0]] if values else []

    async def set_sheet_headers(
        self, access_token: str, spreadsheet_id: str, sheet_name: str, headers: list[str],
    ) -> None:
        """Overwrite row 1 with the given headers."""
        if not headers:
            return
        target = sheet_range(sheet_name, f"A1:{column_letter(len(headers))}1")
        await self._request(
            "PUT",
            f"{SHEETS_URL}/{spreadsheet_id}/values/{quote(target, safe='')}",
            "Failed to write sheet headers",
            headers=self._auth(access_token),
            params={"valueInputOption": "RAW"},
            json={"values": [headers]},
        )

    async def append_row(
        self, access_token: str, spreadsheet_id: str, sheet_name: str, values: list[str],
    ) -> AppendResult:
        """Append one row after the last non-empty row of column A."""
        target = sheet_range(sheet_name, "A:A")
        data = await self._request(
            "POST",
            f"{SHEETS_URL}/{spreadsheet_id}/values/{quote(target, safe='')}:append",
            "Failed to append row to sheet",
            headers=self._auth(access_token),
            params={"valueInputOption": "USER_ENTERED", "insertDataOption": "INSERT_ROWS"},
            json={"values": [values]},
        )
        updates = data.get("updates") or {}
        result = AppendResult(
            spreadsheet_id=data.get("spreadsheetId", spreadsheet_id),
            updated_range=updates.get("updatedRange", ""),
            updated_rows=updates.get("updatedRows", 0),
        )
        logger.info(
            "Google Sheets append to %s/%s: %s",
            spreadsheet_id[:8], sheet_name, result.updated_range or "ok",
            extra={"provider": "google"},
        )
        return result
