"""
Sync overlay for the flow metrics dashboard.
"""

from contextlib import contextmanager

import streamlit as st

OVERLAY_ID = "flowdash-sync-overlay"

_OVERLAY_CSS = """
<style>
@keyframes flowdash-spin { 0% { transform: rotate(0deg); } 100% { transform: rotate(360deg); } }
@keyframes flowdash-progress { 0% { width: 0%; } 50% { width: 70%; } 100% { width: 100%; } }
#%(id)s {
    position: fixed; inset: 0; z-index: 999999;
    display: flex; flex-direction: column; justify-content: center; align-items: center;
    background: rgba(0, 0, 0, 0.85); backdrop-filter: blur(8px);
    font-family: -apple-system, BlinkMacSystemFont, "Segoe UI", Roboto, sans-serif;
}
#%(id)s .spinner {
    width: 56px; height: 56px; margin-bottom: 24px; border-radius: 50%%;
    border: 4px solid rgba(255, 255, 255, 0.1); border-top-color: #6C5CE7;
    animation: flowdash-spin 1s linear infinite;
}
#%(id)s .title { color: white; font-size: 22px; font-weight: 600; margin-bottom: 8px; }
#%(id)s .subtitle { color: rgba(255, 255, 255, 0.7); font-size: 14px; margin-bottom: 28px; }
#%(id)s .track { width: 300px; height: 6px; border-radius: 3px; background: rgba(255, 255, 255, 0.1); overflow: hidden; }
#%(id)s .bar {
    height: 100%%; border-radius: 3px; background: linear-gradient(90deg, #6C5CE7, #A29BFE);
    animation: flowdash-progress 3s ease-in-out infinite;
}
</style>
"""


def overlay_html(message: str, submessage: str) -> str:
    """Markup for the fullscreen overlay; CSS only, since st.markdown does not run scripts."""
    return (
        _OVERLAY_CSS % {'id': OVERLAY_ID}
        + f'<div id="{OVERLAY_ID}">'
        + '<div class="spinner"></div>'
        + f'<div class="title">{message}</div>'
        + f'<div class="subtitle">{submessage}</div>'
        + '<div class="track"><div class="bar"></div></div>'
        + '</div>'
    )


@contextmanager
def sync_overlay(
    message: str = "Syncing Klaviyo...",
    submessage: str = "Fetching flows, campaigns and profiles"
):
    """
    Cover the page while a sync runs, removing the overlay when the block exits.

    Usage:
        with sync_overlay():
            result = sync_service.sync_store(store_id)
    """
    placeholder = st.empty()
    placeholder.markdown(overlay_html(message, submessage), unsafe_allow_html=True)
    try:
        yield placeholder
    finally:
        placeholder.empty()
