from pydantic import BaseModel, Field


class TrackerConfig(BaseModel):
    """The tracker configuration record. Empty strings mean "not set"."""
    website_id: str = ""
    analytics_base_url: str = ""


class TrackerConfigUpdate(BaseModel):
    website_id: str = Field(
        ...,
        max_length=255,
        description="Website ID issued by the Umami collector",
        examples=["df373ef6-0873-3851-7b04-cfc23410f0e8"],
    )
    analytics_base_url: str = Field(
        "",
        max_length=2048,
        description="Base URL of the Umami collector; empty uses the default collector",
        examples=["https://yourtrackingsite.com"],
    )


class TrackerConfigResponse(TrackerConfig):
    is_configured: bool
    script_url: str


class PrivacyPolicyResponse(BaseModel):
    text: str


class SnippetPreview(BaseModel):
    snippet: str
