"""Save-article pipeline.

Steps run strictly in order and stop at the first failure:

1. authenticate the caller
2. validate the URL
3. resolve (or lazily provision) the user
4. reject URLs the user already saved
5. extract readable content
6. estimate reading time
7. analyze relevance (never fails, falls back to word frequency)
8. persist the saved item

Persisting is the only write, so a failure at any step leaves nothing behind.
"""

import json
import logging
import math
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from laterstack.auth import CallerSession, require_session
from laterstack.errors import DuplicateArticle, InvalidInput
from laterstack.models.saved_item import SavedItem, get_session_factory
from laterstack.services.analyzer import RelevanceAnalyzer, get_relevance_analyzer
from laterstack.services.extractor import ContentExtractor, get_content_extractor
from laterstack.services.users import UserProvisioner, get_user_provisioner
from laterstack.tracing import tracer
from laterstack.validation import Invalid, validate_url

logger = logging.getLogger(__name__)


def estimate_reading_time(word_count: int, reading_speed: int) -> int:
    """Minutes needed to read word_count words at reading_speed wpm, at least 1."""
    return max(1, math.ceil(word_count / reading_speed))


class SaveArticleService:
    """Coordinates extraction, analysis and persistence of a saved article."""

    def __init__(
        self,
        extractor: ContentExtractor | None = None,
        analyzer: RelevanceAnalyzer | None = None,
        provisioner: UserProvisioner | None = None,
    ):
        self._extractor = extractor or get_content_extractor()
        self._analyzer = analyzer or get_relevance_analyzer()
        self._provisioner = provisioner or get_user_provisioner()

    async def save_article(self, session: CallerSession | None, url: str) -> SavedItem:
        """Run the pipeline for one URL and return the persisted item.

        Raises:
            Unauthenticated, InvalidInput, UserProvisioningFailed, DuplicateArticle,
            ExtractionTimeout, ExtractionFailed, ContentTooShort.
        """
        caller = require_session(session)

        validated = validate_url(url)
        if isinstance(validated, Invalid):
            raise InvalidInput(validated.message)
        url = validated.value

        with tracer.start_as_current_span("save_article.resolve_user"):
            user = await self._provisioner.resolve_user(caller.external_id)

        factory = await get_session_factory()
        async with factory() as db:
            existing = await db.execute(
                select(SavedItem.id).where(SavedItem.user_id == user.id, SavedItem.url == url)
            )
            if existing.first() is not None:
                logger.info("User %s already saved %s", user.id, url)
                raise DuplicateArticle()

        with tracer.start_as_current_span("save_article.extract"):
            article = await self._extractor.extract(url)

        estimated_time = estimate_reading_time(article.word_count, user.reading_speed)

        with tracer.start_as_current_span("save_article.analyze"):
            analysis = await self._analyzer.analyze(
                article.content, user.interest_list, user.goals, user_id=user.id
            )

        item = SavedItem(
            user_id=user.id,
            url=url,
            title=article.title,
            content=article.content,
            estimated_time=estimated_time,
            topics=json.dumps(analysis.topics),
            relevance_score=analysis.relevance_score,
            reasoning=analysis.reasoning,
            saved_at=datetime.now(),
        )
        async with factory() as db:
            db.add(item)
            try:
                await db.commit()
            except IntegrityError as e:
                # Saved concurrently between the duplicate check and now
                await db.rollback()
                logger.info("Concurrent save of %s for user %s", url, user.id)
                raise DuplicateArticle() from e
            await db.refresh(item)

        logger.info(
            "Saved item %s for user %s (%d min, relevance %.2f)",
            item.id,
            user.id,
            estimated_time,
            analysis.relevance_score,
        )
        return item


# Singleton instance
_service: SaveArticleService | None = None


def get_save_article_service() -> SaveArticleService:
    """Get or create the save-article service singleton."""
    global _service
    if _service is None:
        _service = SaveArticleService()
    return _service
