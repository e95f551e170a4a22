"""
Meta payload schemas - inbound webhook deliveries and Graph API responses.
Every optional field has an explicit default so missing keys never raise.
"""
from typing import Any, Optional
from pydantic import BaseModel, ConfigDict, Field


class LeadgenValue(BaseModel):
    """`value` of a leadgen change: identifies one new lead. Numeric ids arrive as str."""
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    page_id: str = ""
    form_id: str = ""
    leadgen_id: str = ""
    ad_id: Optional[str] = None
    created_time: Optional[int] = None


class WebhookChange(BaseModel):
    model_config = ConfigDict(extra="ignore")

    field: str = ""
    # Raw; validated one change at a time by the processor
    value: Any = None


class WebhookEntry(BaseModel):
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    id: Optional[str] = None
    time: Optional[int] = None
    changes: list[WebhookChange] = Field(default_factory=list)


class MetaWebhookPayload(BaseModel):
    """Top-level Meta webhook delivery: {object, entry: [{changes: [...]}]}."""
    model_config = ConfigDict(extra="ignore")

    object: str = ""
    entry: list[WebhookEntry] = Field(default_factory=list)

    def leadgen_values(self) -> list[Any]:
        """Raw `value` of every leadgen change across entry[].changes[], in delivery order."""
        return [
            change.value
            for entry in self.entry
            for change in entry.changes
            if change.field == "leadgen"
        ]


class FieldDatum(BaseModel):
    """One answered question on a lead form."""
    model_config = ConfigDict(extra="ignore")

    name: str
    values: list[str] = Field(default_factory=list)


class MetaLead(BaseModel):
    """GET /{lead_id} response. Missing field_data => empty list."""
    model_config = ConfigDict(extra="ignore")

    id: str = ""
    created_time: Optional[str] = None
    form_id: Optional[str] = None
    field_data: list[FieldDatum] = Field(default_factory=list)


class MetaPage(BaseModel):
    id: str
    name: str = ""
    access_token: str = ""


class MetaLeadForm(BaseModel):
    id: str
    name: str = ""
    status: str = ""
    leads_count: Optional[int] = None


class MetaFormQuestion(BaseModel):
    key: str
    label: str
    type: str = "CUSTOM"


class MetaUser(BaseModel):
    id: str
    name: str = ""
    email: Optional[str] = None


class MetaToken(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: Optional[int] = None
