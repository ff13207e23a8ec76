"""
Protocols for pluggable HTML extraction backends.
"""

from __future__ import annotations

from typing import Optional, Protocol, runtime_checkable

from .models import ExtractionResult


@runtime_checkable
class ExtractionBackend(Protocol):
    """Parses raw HTML into a structured article."""

    name: str

    async def parse(
        self,
        html: str | bytes,
        document_url: str,
        *,
        timeout: Optional[float] = None,
    ) -> ExtractionResult:
        """Extract the article from an HTML document.

        Args:
            html: Raw document markup
            document_url: URL the document was loaded from
            timeout: Optional per-call deadline in seconds

        Returns:
            ExtractionResult, or ``ExtractionResult.no_article()`` when the
            document holds nothing readable
        """
        ...

    async def close(self, timeout: Optional[float] = None) -> object:
        """Release backend resources."""
        ...
