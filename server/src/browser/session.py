"""
Browser session management for a single scan.

Wraps Playwright's Chromium so the scan controller only sees
``RequestDescription`` records going in and a ``continue``
acknowledgment going out.  Every intercepted request is
acknowledged, whatever the handler decided or raised.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from typing import Any

from playwright import async_api

from src.models import browser, traffic
from src.utils import errors, logger

log = logger.create_logger("BrowserSession")

# ============================================================================
# Constants
# ============================================================================

VIEWPORT = {"width": 1920, "height": 1080}

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

LAUNCH_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-blink-features=AutomationControlled",
    "--window-size=1920,1080",
]

_MASK_WEBDRIVER_SCRIPT = """
    Object.defineProperty(navigator, 'webdriver', { get: () => false });
"""

RequestHandler = Callable[[traffic.RequestDescription], Awaitable[Any]]
DocumentResponseHandler = Callable[[browser.DocumentResponse], Awaitable[Any]]


# ============================================================================
# Conversions
# ============================================================================


def security_detail_from_playwright(details: dict[str, Any] | None) -> traffic.SecurityDetail | None:
    """Convert Playwright ``SecurityDetails`` into a ``SecurityDetail``.

    ``validTo`` arrives as Unix seconds and is reported as an ISO date.
    """
    if not details:
        return None
    valid_to = details.get("validTo")
    expiry = (
        datetime.fromtimestamp(valid_to, UTC).date().isoformat()
        if isinstance(valid_to, (int, float))
        else "Unknown"
    )
    return traffic.SecurityDetail(
        protocol=details.get("protocol") or "Unknown",
        issuer=details.get("issuer") or "Unknown",
        valid_to=expiry,
    )


def cookie_from_playwright(cookie: dict[str, Any]) -> traffic.CookieRecord:
    """Convert a Playwright cookie dict into a ``CookieRecord``."""
    return traffic.CookieRecord(
        name=cookie.get("name", ""),
        value=cookie.get("value", ""),
        domain=cookie.get("domain", ""),
        path=cookie.get("path", "/"),
        expires=cookie.get("expires", -1),
        http_only=cookie.get("httpOnly", False),
        secure=cookie.get("secure", False),
        same_site=cookie.get("sameSite", "None"),
    )


def describe_request(request: async_api.Request) -> traffic.RequestDescription:
    """Build the read-only view of a Playwright request."""
    try:
        post_data = request.post_data
    except Exception:
        # Binary bodies cannot be decoded as text.
        post_data = None
    return traffic.RequestDescription(
        url=request.url,
        method=request.method,
        resource_type=request.resource_type,
        post_data=post_data,
    )


# ============================================================================
# Session
# ============================================================================


class BrowserSession:
    """
    Manages an isolated Chromium instance for one scan.
    """

    def __init__(self, *, headless: bool = True) -> None:
        self._headless = headless
        self._playwright: async_api.Playwright | None = None
        self._browser: async_api.Browser | None = None
        self._context: async_api.BrowserContext | None = None
        self._page: async_api.Page | None = None

    def _require_page(self) -> async_api.Page:
        if not self._page:
            raise RuntimeError("No browser session active")
        return self._page

    # ==========================================================================
    # Browser Lifecycle
    # ==========================================================================

    async def launch(self) -> None:
        """Launch Chromium with a desktop profile and automation signals masked."""
        log.info("Launching browser", {"headless": self._headless})
        self._playwright = await async_api.async_playwright().start()
        self._browser = await self._playwright.chromium.launch(
            headless=self._headless,
            args=LAUNCH_ARGS,
        )
        self._context = await self._browser.new_context(
            viewport=VIEWPORT,  # type: ignore[arg-type]
            user_agent=USER_AGENT,
        )
        await self._context.add_init_script(_MASK_WEBDRIVER_SCRIPT)
        self._page = await self._context.new_page()
        log.debug("Browser launched", {"viewport": f"{VIEWPORT['width']}x{VIEWPORT['height']}"})

    # ==========================================================================
    # Interception
    # ==========================================================================

    async def intercept(self, handler: RequestHandler) -> None:
        """Route every outgoing request of the page through *handler*."""
        page = self._require_page()

        async def on_route(route: async_api.Route) -> None:
            try:
                await handler(describe_request(route.request))
            except Exception as exc:
                log.warn(
                    "Request handler failed",
                    {"url": route.request.url, "error": errors.get_error_message(exc)},
                )
            finally:
                try:
                    await route.continue_()
                except Exception as exc:
                    # The page may already be closed when a late handler finishes.
                    log.debug("Route continue failed", {"url": route.request.url, "error": errors.get_error_message(exc)})

        await page.route("**/*", on_route)

    def on_document_response(self, handler: DocumentResponseHandler) -> None:
        """Report main-frame navigation responses (with TLS details) to *handler*."""
        page = self._require_page()

        async def on_response(response: async_api.Response) -> None:
            try:
                if not response.request.is_navigation_request() or response.frame != page.main_frame:
                    return
                details = await response.security_details()
                await handler(
                    browser.DocumentResponse(
                        url=response.url,
                        status=response.status,
                        security=security_detail_from_playwright(dict(details) if details else None),
                    )
                )
            except Exception as exc:
                log.debug("Document response handling failed", {"url": response.url, "error": errors.get_error_message(exc)})

        page.on("response", on_response)

    # ==========================================================================
    # Navigation
    # ==========================================================================

    async def navigate(self, url: str, timeout_ms: int = 60000) -> browser.NavigationResult:
        """Navigate to *url* and wait for the network to go idle."""
        page = self._require_page()
        log.debug("Navigating", {"url": url, "timeout": timeout_ms})
        try:
            response = await page.goto(url, wait_until="networkidle", timeout=timeout_ms)
        except Exception as error:
            log.warn("Navigation error", {"url": url, "error": errors.get_error_message(error)})
            return browser.NavigationResult(success=False, error_message=errors.get_error_message(error))

        if page.url != url:
            log.info("Redirected", {"from": url, "to": page.url})
        return browser.NavigationResult(
            success=True,
            status_code=response.status if response else None,
            status_text=response.status_text if response else None,
        )

    # ==========================================================================
    # Data Capture
    # ==========================================================================

    async def cookies(self) -> list[traffic.CookieRecord]:
        """Capture all cookies from the browser context."""
        if not self._context:
            return []
        raw = await self._context.cookies()
        log.debug("Captured cookies", {"count": len(raw)})
        return [cookie_from_playwright(dict(c)) for c in raw]

    # ==========================================================================
    # Cleanup
    # ==========================================================================

    async def close(self) -> None:
        """Close the browser and release Playwright. Never raises."""
        log.debug("Closing browser session")
        self._page = None

        if self._context:
            try:
                await self._context.close()
            except Exception as exc:
                log.debug("Context close error (non-fatal)", {"error": str(exc)})
            self._context = None

        if self._browser:
            try:
                await self._browser.close()
            except Exception as exc:
                log.debug("Browser close error (non-fatal)", {"error": str(exc)})
            self._browser = None

        if self._playwright:
            try:
                await self._playwright.stop()
            except Exception as exc:
                log.debug("Playwright stop error (non-fatal)", {"error": str(exc)})
            self._playwright = None

        log.debug("Browser session closed")
