"""
Browser storage snapshot: cookies, localStorage and sessionStorage.
"""

from __future__ import annotations

from typing import Any

from playwright import async_api

from scraper_analytics.models import report
from scraper_analytics.utils import errors, logger

log = logger.create_logger("BrowserStorage")

_LOCAL_STORAGE_JS = """() => {
    const items = {};
    const store = window.localStorage;
    if (!store) return items;
    for (let i = 0; i < store.length; i++) {
        const key = store.key(i);
        if (key !== null) items[key] = store.getItem(key) || '';
    }
    return items;
}"""

_SESSION_STORAGE_JS = """() => {
    const items = {};
    const store = window.sessionStorage;
    if (!store) return items;
    for (let i = 0; i < store.length; i++) {
        const key = store.key(i);
        if (key !== null) items[key] = store.getItem(key) || '';
    }
    return items;
}"""


def _to_storage_cookie(cookie: dict[str, Any]) -> report.StorageCookie:
    """Map a Playwright cookie dict onto the report model."""
    return report.StorageCookie(
        name=cookie.get("name", ""),
        value=cookie.get("value", ""),
        domain=cookie.get("domain", ""),
        path=cookie.get("path", "/"),
        expires=cookie.get("expires", -1),
        http_only=cookie.get("httpOnly", False),
        secure=cookie.get("secure", False),
        same_site=cookie.get("sameSite", "None"),
    )


async def capture_browser_storage(page: async_api.Page) -> report.BrowserStorage | None:
    """Snapshot cookies plus local and session storage for *page*.

    All-or-nothing: if any of the three reads fails the whole
    snapshot is dropped and ``None`` is returned, so callers never
    see a half-filled storage record.
    """
    try:
        cookies = await page.context.cookies()
        local_storage = await page.evaluate(_LOCAL_STORAGE_JS)
        session_storage = await page.evaluate(_SESSION_STORAGE_JS)
        storage = report.BrowserStorage(
            cookies=[_to_storage_cookie(dict(cookie)) for cookie in cookies],
            local_storage={str(k): str(v) for k, v in (local_storage or {}).items()},
            session_storage={str(k): str(v) for k, v in (session_storage or {}).items()},
        )
    except Exception as exc:
        log.error("Failed to capture browser storage", {"error": errors.get_error_message(exc)})
        return None

    log.debug(
        "Captured browser storage",
        {
            "cookies": len(storage.cookies),
            "localStorage": len(storage.local_storage),
            "sessionStorage": len(storage.session_storage),
        },
    )
    return storage
