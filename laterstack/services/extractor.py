"""Article content extraction through a reader service (Jina Reader API).

The reader service returns clean markdown for a page, which works well as
input for relevance analysis.
"""

import asyncio
import logging
from dataclasses import dataclass

import httpx

from laterstack.config import get_settings
from laterstack.errors import ContentTooShort, ExtractionFailed, ExtractionTimeout

logger = logging.getLogger(__name__)

EXTRACTION_TIMEOUT_SECONDS = 10.0

# Pages below this are usually paywalls, consent walls or error pages
MIN_WORD_COUNT = 100

DEFAULT_TITLE = "Untitled Article"


@dataclass
class ExtractedArticle:
    """Readable content extracted from a URL."""

    title: str
    content: str
    word_count: int


def count_words(text: str) -> int:
    """Count whitespace-delimited tokens."""
    return len(text.split())


class ContentExtractor:
    """Wraps the external reader service and normalizes its failures."""

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = EXTRACTION_TIMEOUT_SECONDS,
    ):
        settings = get_settings()
        self._base_url = (base_url or settings.reader_base_url).rstrip("/")
        self._api_key = api_key if api_key is not None else settings.reader_api_key
        self._transport = transport
        self._timeout = timeout

    async def extract(self, url: str) -> ExtractedArticle:
        """Fetch and validate readable content for a URL.

        Raises:
            ExtractionTimeout: the whole request, body included, took longer than
                the timeout.
            ExtractionFailed: non-2xx response, transport error, or no content.
            ContentTooShort: fewer than MIN_WORD_COUNT words came back.
        """
        headers = {"Accept": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"

        try:
            # httpx times each phase separately; this bounds the whole call
            async with asyncio.timeout(self._timeout):
                async with httpx.AsyncClient(
                    timeout=self._timeout, transport=self._transport
                ) as client:
                    response = await client.get(f"{self._base_url}/{url}", headers=headers)
                    response.raise_for_status()
                    data = response.json()
        except (httpx.TimeoutException, TimeoutError) as e:
            logger.warning("Reader service timed out for %s", url)
            raise ExtractionTimeout() from e
        except httpx.HTTPStatusError as e:
            logger.warning(
                "Reader service returned %s for %s", e.response.status_code, url
            )
            raise ExtractionFailed(
                f"Failed to fetch content: {e.response.reason_phrase or e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            logger.warning("Reader service request failed for %s: %s", url, e)
            raise ExtractionFailed() from e
        except ValueError as e:
            logger.error("Reader service returned non-JSON body for %s", url)
            raise ExtractionFailed() from e

        payload = data.get("data") if isinstance(data, dict) else None
        content = payload.get("content") if isinstance(payload, dict) else None
        if not isinstance(content, str) or not content.strip():
            logger.error("Reader response missing content for %s", url)
            raise ExtractionFailed()

        word_count = count_words(content)
        if word_count < MIN_WORD_COUNT:
            logger.info("Content too short for %s (%d words)", url, word_count)
            raise ContentTooShort()

        title = payload.get("title") or DEFAULT_TITLE
        return ExtractedArticle(title=str(title)[:500], content=content, word_count=word_count)


# Singleton instance
_extractor: ContentExtractor | None = None


def get_content_extractor() -> ContentExtractor:
    """Get or create the content extractor singleton."""
    global _extractor
    if _extractor is None:
        _extractor = ContentExtractor()
    return _extractor
