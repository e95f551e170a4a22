"""
Resolve a usable Google access token for an automation's linked connection.
"""
import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

from leadsync.integrations.google_sheets import GoogleSheetsClient
from leadsync.services.automation_store import AutomationStore, as_utc
from leadsync.utils.encryption import CredentialVault
from leadsync.utils.errors import PipelineError

logger = logging.getLogger(__name__)


async def resolve_sheet_access_token(
    store: AutomationStore,
    vault: CredentialVault,
    sheets: GoogleSheetsClient,
    connection_id: Optional[uuid.UUID],
) -> str:
    """
    Decrypt the connection's access token. When token_expires_at is in the
    past, refresh once, persist the new encrypted token + expiry, and return
    the new token. The stored refresh token is never rewritten.
    """
    connection = await store.get_google_connection(connection_id)
    if connection is None:
        raise PipelineError("Google connection not found")

    access_token = vault.decrypt(connection.access_token_encrypted)
    refresh_token = (
        vault.decrypt(connection.refresh_token_encrypted)
        if connection.refresh_token_encrypted else None
    )

    expires_at = as_utc(connection.token_expires_at)
    if expires_at is None or expires_at >= datetime.now(timezone.utc):
        return access_token

    if not refresh_token:
        raise PipelineError("Google token expired and no refresh token is stored")

    refreshed = await sheets.refresh_access_token(refresh_token)
    await store.update_google_token(
        connection.id, vault.encrypt(refreshed.access_token), refreshed.expires_at,
    )
    logger.info(
        "Refreshed Google token for connection %s", str(connection.id)[:8],
        extra={"provider": "google"},
    )
    return refreshed.access_token
