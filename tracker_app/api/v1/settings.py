from fastapi import APIRouter, Depends
from tracker_app.dependencies import get_settings_service, require_admin
from tracker_app.identity.strategies import ANONYMOUS
from tracker_app.schemas.tracker import (
    TrackerConfig,
    TrackerConfigUpdate,
    TrackerConfigResponse,
    PrivacyPolicyResponse,
    SnippetPreview,
)
from tracker_app.services.settings_service import TrackerSettingsService
from tracker_app.services.snippet import resolve_script_url, render_tracking_snippet

router = APIRouter(tags=["settings"], dependencies=[Depends(require_admin)])


def _to_response(config: TrackerConfig, is_configured: bool) -> TrackerConfigResponse:
    return TrackerConfigResponse(
        website_id=config.website_id,
        analytics_base_url=config.analytics_base_url,
        is_configured=is_configured,
        script_url=resolve_script_url(config.analytics_base_url),
    )


@router.get("/settings", response_model=TrackerConfigResponse)
async def get_settings(
    service: TrackerSettingsService = Depends(get_settings_service)
):
    """Current tracker configuration"""
    config = await service.get_config()
    return _to_response(config, await service.is_configured())


@router.put("/settings", response_model=TrackerConfigResponse)
async def update_settings(
    payload: TrackerConfigUpdate,
    service: TrackerSettingsService = Depends(get_settings_service)
):
    """Save the website id and analytics URL (values are sanitized first)"""
    config = await service.update_config(payload.website_id, payload.analytics_base_url)
    return _to_response(config, await service.is_configured())


@router.get("/settings/privacy-policy", response_model=PrivacyPolicyResponse)
async def get_privacy_policy():
    """Text to paste into the site's privacy policy"""
    return PrivacyPolicyResponse(text=TrackerSettingsService.get_privacy_policy_text())


@router.get("/snippet/preview", response_model=SnippetPreview)
async def preview_snippet(
    service: TrackerSettingsService = Depends(get_settings_service)
):
    """The tag an anonymous visitor would get with the current configuration"""
    config = await service.get_config()
    return SnippetPreview(snippet=render_tracking_snippet(ANONYMOUS, config))
