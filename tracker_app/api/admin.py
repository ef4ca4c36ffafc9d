"""
Admin pages: settings form, analytics dashboard link page and the
dashboard widget fragment.

Templates are inline Jinja2 strings rendered with autoescaping on.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Form, HTTPException, status
from fastapi.responses import HTMLResponse
from jinja2 import Environment
from markupsafe import Markup

from tracker_app.dependencies import get_settings_service, require_admin
from tracker_app.services.nonce import create_nonce, verify_nonce
from tracker_app.services.settings_service import TrackerSettingsService
from tracker_app.services.snippet import clean_url

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])

SETTINGS_NONCE_ACTION = "umami_settings_action"
SETTINGS_PATH = "/admin/settings"

_env = Environment(autoescape=True)
_env.filters["clean_url"] = clean_url


PAGE_LAYOUT = """<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <title>{{ title }}</title>
    <style>
        body { font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; margin: 2em; color: #1d2327; }
        .notice { padding: 8px 12px; margin: 1em 0; border-left: 4px solid #72aee6; background: #fff; }
        .notice-warning { border-left-color: #dba617; }
        .notice-success { border-left-color: #00a32a; }
        .button { display: inline-block; padding: 6px 12px; border: 1px solid #2271b1; color: #2271b1; text-decoration: none; }
        .button-primary { background: #2271b1; color: #fff; }
        th { text-align: left; padding-right: 1em; }
        input[type=text] { min-width: 300px; }
    </style>
</head>
<body>
<div class="wrap">
    <h1>{{ title }}</h1>
    {{ content }}
    <p>Thanks for using Umami Tracker! For custom designed sites, plugins, graphic design, tech support, and more, check out <a href="https://makingtheimpact.com">Making The Impact LLC!</a></p>
</div>
</body>
</html>
"""

SETTINGS_CONTENT = """
{% if saved %}<div class="notice notice-success"><p>Settings saved.</p></div>{% endif %}
{% if not configured %}<div class="notice notice-warning"><p>Umami Analytics is not fully configured. Please enter your Website ID and Analytics URL below.</p></div>{% endif %}
<form method="post" action="{{ settings_path }}">
    <input type="hidden" name="umami_settings_nonce" value="{{ nonce }}">
    <table class="form-table">
        <tr>
            <th scope="row"><label for="umami_website_id">Website ID:</label></th>
            <td><input type="text" name="umami_website_id" id="umami_website_id" value="{{ website_id }}" placeholder="df373ef6-0873-3851-7b04-cfc23410f0e8"></td>
        </tr>
        <tr>
            <th scope="row"><label for="umami_analytics_url">Analytics URL:</label></th>
            <td><input type="text" name="umami_analytics_url" id="umami_analytics_url" value="{{ analytics_url }}" placeholder="https://yourtrackingsite.com"></td>
        </tr>
    </table>
    <p><button type="submit" name="submit" value="1" class="button button-primary">Save Changes</button></p>
</form>

<h2>Access Your Analytics</h2>
<p>Click the button below to open your Umami Analytics dashboard in a new tab:</p>
<p><a href="{{ analytics_url | clean_url }}" target="_blank" class="button button-primary">Open Umami Dashboard</a></p>

<h2>Privacy Policy Content</h2>
<p>You can copy the text below to add information about Umami Analytics to your privacy policy:</p>
<textarea id="umami-privacy-policy-text" rows="6" style="width: 100%;" readonly>{{ privacy_policy_text }}</textarea>
<button id="umami-copy-privacy-policy" class="button" type="button">Copy to Clipboard</button>
<script>
document.getElementById('umami-copy-privacy-policy').addEventListener('click', function () {
    var button = this;
    navigator.clipboard.writeText(document.getElementById('umami-privacy-policy-text').value);
    button.textContent = 'Copied!';
    setTimeout(function () { button.textContent = 'Copy to Clipboard'; }, 2000);
});
</script>
"""

ANALYTICS_CONTENT = """
<p>The Umami Analytics dashboard cannot be embedded here. You can access your dashboard by clicking the button below:</p>
<p><a href="{{ analytics_url | clean_url }}" target="_blank" class="button button-primary button-large">Open Umami Dashboard</a></p>
<h2>Tips for Using Umami Analytics</h2>
<ul>
    <li>Ensure you're logged in to your Umami account to view your analytics data.</li>
    <li>The dashboard provides real-time visitor data, page views, and other valuable insights.</li>
    <li>You can customize your dashboard view and create custom reports within the Umami interface.</li>
</ul>
<p>If you encounter any issues accessing your dashboard, please verify that your Website ID and Analytics URL are correctly set in the <a href="{{ settings_path }}">tracker settings</a>.</p>
"""

WIDGET_CONTENT = """<div class="umami-dashboard-widget">
<h2>Umami Analytics Overview</h2>
{% if configured %}
<p>Quick access to your Umami Analytics dashboard:</p>
<a href="{{ analytics_url | clean_url }}" target="_blank" class="button button-primary">Open Umami Dashboard</a>
{% else %}
<p>Umami Analytics is not fully configured. Please set it up in the <a href="{{ settings_path }}">settings page</a>.</p>
{% endif %}
</div>
"""


def render_page(title: str, content_template: str, **context) -> str:
    content = _env.from_string(content_template).render(settings_path=SETTINGS_PATH, **context)
    # content is already escaped
    return _env.from_string(PAGE_LAYOUT).render(title=title, content=Markup(content))


async def _render_settings(service: TrackerSettingsService, saved: bool = False) -> str:
    config = await service.get_config()
    return render_page(
        "Umami Tracking Settings",
        SETTINGS_CONTENT,
        saved=saved,
        configured=await service.is_configured(),
        nonce=create_nonce(SETTINGS_NONCE_ACTION),
        website_id=config.website_id,
        analytics_url=config.analytics_base_url,
        privacy_policy_text=service.get_privacy_policy_text(),
    )


@router.get("/settings", response_class=HTMLResponse)
async def settings_page(
    service: TrackerSettingsService = Depends(get_settings_service)
):
    """Settings form for the website id and analytics URL"""
    return HTMLResponse(content=await _render_settings(service))


@router.post("/settings", response_class=HTMLResponse)
async def save_settings(
    umami_website_id: str = Form(""),
    umami_analytics_url: str = Form(""),
    umami_settings_nonce: Optional[str] = Form(None),
    service: TrackerSettingsService = Depends(get_settings_service)
):
    """Handle the settings form. The nonce must match the form action."""
    if not verify_nonce(umami_settings_nonce, SETTINGS_NONCE_ACTION):
        logger.warning("Rejected settings form with invalid nonce")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="The link you followed has expired."
        )

    await service.update_config(umami_website_id, umami_analytics_url)

    return HTMLResponse(content=await _render_settings(service, saved=True))


@router.get("/analytics", response_class=HTMLResponse)
async def analytics_page(
    service: TrackerSettingsService = Depends(get_settings_service)
):
    """Link-out page for the Umami dashboard"""
    config = await service.get_config()
    return HTMLResponse(content=render_page(
        "Umami Analytics Dashboard",
        ANALYTICS_CONTENT,
        analytics_url=config.analytics_base_url,
    ))


@router.get("/widget", response_class=HTMLResponse)
async def dashboard_widget(
    service: TrackerSettingsService = Depends(get_settings_service)
):
    """Dashboard widget fragment, meant to be embedded in an admin dashboard"""
    config = await service.get_config()
    content = _env.from_string(WIDGET_CONTENT).render(
        settings_path=SETTINGS_PATH,
        configured=await service.is_configured(),
        analytics_url=config.analytics_base_url,
    )
    return HTMLResponse(content=content)
