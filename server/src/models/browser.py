"""Pydantic models for browser navigation and document responses."""

from __future__ import annotations

import pydantic

from src.models import traffic


class NavigationResult(pydantic.BaseModel):
    """Result of a top-level navigation attempt."""

    success: bool
    status_code: int | None = None
    status_text: str | None = None
    error_message: str | None = None


class DocumentResponse(pydantic.BaseModel):
    """A main-frame navigation response observed during a scan."""

    url: str
    status: int | None = None
    security: traffic.SecurityDetail | None = None

    @property
    def is_redirect(self) -> bool:
        """True for intermediate 3xx hops of a redirect chain."""
        return self.status is not None and 300 <= self.status < 400
