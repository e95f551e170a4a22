"""
Meta Graph API client - lead retrieval, pages, lead forms, webhook subscription.

Auth: page access token (lead/page endpoints) or user token (pages listing).
Docs: https://developers.facebook.com/docs/marketing-api/guides/lead-ads
"""
import logging
from typing import Optional
from urllib.parse import urlencode

import httpx

from leadsync.integrations.provider_base import ProviderClient
from leadsync.schemas.meta_payloads import (
    MetaFormQuestion,
    MetaLead,
    MetaLeadForm,
    MetaPage,
    MetaToken,
    MetaUser,
)
from leadsync.utils.errors import MetaApiError

logger = logging.getLogger(__name__)

OAUTH_SCOPES = "pages_show_list,pages_manage_ads,leads_retrieval,pages_read_engagement"


class MetaGraphClient(ProviderClient):
    """Meta Graph API client. One instance per process, injected at startup."""

    error_class = MetaApiError

    def __init__(
        self,
        app_id: str,
        app_secret: str,
        graph_version: str = "v21.0",
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        super().__init__(http_client)
        self.app_id = app_id
        self.app_secret = app_secret
        self.graph_version = graph_version
        self.base_url = f"https://graph.facebook.com/{graph_version}"

    @classmethod
    def from_settings(cls, settings, http_client: Optional[httpx.AsyncClient] = None) -> "MetaGraphClient":
        return cls(
            app_id=settings.meta_app_id,
            app_secret=settings.meta_app_secret,
            graph_version=settings.meta_graph_version,
            http_client=http_client,
        )

    def _extract_error_message(self, payload: dict) -> Optional[str]:
        if isinstance(payload, dict) and isinstance(payload.get("error"), dict):
            return payload["error"].get("message")
        return None

    # --- Lead retrieval (webhook pipeline) ---

    async def get_lead(self, lead_id: str, page_token: str) -> MetaLead:
        """Fetch a lead's field data."""
        data = await self._request(
            "GET",
            f"{self.base_url}/{lead_id}",
            "Failed to fetch lead data",
            params={"access_token": page_token},
        )
        return MetaLead.model_validate(data)

    # --- OAuth (dashboard connection flow) ---

    def get_oauth_url(self, redirect_uri: str, state: str) -> str:
        params = urlencode({
            "client_id": self.app_id,
            "redirect_uri": redirect_uri,
            "scope": OAUTH_SCOPES,
            "response_type": "code",
            "state": state,
        })
        return f"https://www.facebook.com/{self.graph_version}/dialog/oauth?{params}"

    async def exchange_code_for_token(self, code: str, redirect_uri: str) -> MetaToken:
        data = await self._request(
            "GET",
            f"{self.base_url}/oauth/access_token",
            "Failed to exchange Meta code for token",
            params={
                "client_id": self.app_id,
                "redirect_uri": redirect_uri,
                "client_secret": self.app_secret,
                "code": code,
            },
        )
        return MetaToken.model_validate(data)

    async def get_long_lived_token(self, short_lived_token: str) -> MetaToken:
        data = await self._request(
            "GET",
            f"{self.base_url}/oauth/access_token",
            "Failed to get long-lived Meta token",
            params={
                "grant_type": "fb_exchange_token",
                "client_id": self.app_id,
                "client_secret": self.app_secret,
                "fb_exchange_token": short_lived_token,
            },
        )
        return MetaToken.model_validate(data)

    async def get_user_info(self, access_token: str) -> MetaUser:
        data = await self._request(
            "GET",
            f"{self.base_url}/me",
            "Failed to fetch Meta user info",
            params={"fields": "id,name,email", "access_token": access_token},
        )
        return MetaUser.model_validate(data)

    # --- Pages and forms (automation setup) ---

    async def get_pages(self, user_token: str) -> list[MetaPage]:
        data = await self._request(
            "GET",
            f"{self.base_url}/me/accounts",
            "Failed to fetch Meta pages",
            params={"fields": "id,name,access_token", "access_token": user_token},
        )
        return [MetaPage.model_validate(p) for p in data.get("data") or []]

    async def get_page_lead_forms(self, page_id: str, page_token: str) -> list[MetaLeadForm]:
        data = await self._request(
            "GET",
            f"{self.base_url}/{page_id}/leadgen_forms",
            "Failed to fetch lead forms",
            params={"fields": "id,name,status,leads_count", "access_token": page_token},
        )
        return [MetaLeadForm.model_validate(f) for f in data.get("data") or []]

    async def get_form_fields(self, form_id: str, page_token: str) -> list[MetaFormQuestion]:
        """Questions on a lead form. key falls back to id, label to key."""
        data = await self._request(
            "GET",
            f"{self.base_url}/{form_id}",
            "Failed to fetch form fields",
            params={"fields": "questions", "access_token": page_token},
        )
        questions = []
        for q in data.get("questions") or []:
            key = q.get("key") or q.get("id") or ""
            questions.append(MetaFormQuestion(
                key=key,
                label=q.get("label") or key,
                type=q.get("type") or "CUSTOM",
            ))
        return questions

    async def subscribe_page_to_webhook(self, page_id: str, page_token: str) -> bool:
        """Subscribe the app to a page's leadgen events."""
        data = await self._request(
            "POST",
            f"{self.base_url}/{page_id}/subscribed_apps",
            "Failed to subscribe to webhook",
            json={"subscribed_fields": ["leadgen"], "access_token": page_token},
        )
        subscribed = data.get("success") is True
        logger.info(
            "Meta page %s webhook subscription: %s", page_id[:8], subscribed,
            extra={"page_id": page_id, "provider": "meta"},
        )
        return subscribed
