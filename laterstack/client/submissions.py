"""Optimistic tracking of in-flight article submissions.

A user can submit several URLs without waiting for each round trip. Every
submission becomes an OptimisticArticle keyed by a locally generated id, so
responses can arrive in any order. Pending entries and committed items are
kept as two separate collections and combined by merge_articles().
"""

import asyncio
import logging
import uuid
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum

from laterstack.schemas import ActionResult, SavedItemResponse

logger = logging.getLogger(__name__)

# Success entries stay visible this long before the refreshed list replaces them
SUCCESS_LINGER_SECONDS = 1.0

DUPLICATE_ERROR_CODE = "duplicate_article"
DEFAULT_SAVE_ERROR = "Failed to save article"
UNEXPECTED_ERROR = "An unexpected error occurred"


class SubmissionStatus(str, Enum):
    LOADING = "loading"
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class OptimisticArticle:
    """Client-side stand-in for a submission that is not confirmed yet."""

    optimistic_id: str
    url: str
    status: SubmissionStatus
    submitted_at: datetime
    error: str | None = None
    error_code: str | None = None
    retryable: bool = True
    saved_item: SavedItemResponse | None = None

    @property
    def is_duplicate(self) -> bool:
        return self.status == SubmissionStatus.ERROR and self.error_code == DUPLICATE_ERROR_CODE

    @property
    def can_retry(self) -> bool:
        """Failed, and the server did not mark the failure as terminal."""
        return self.status == SubmissionStatus.ERROR and self.retryable


Article = OptimisticArticle | SavedItemResponse

SaveFunc = Callable[[str], Awaitable[ActionResult]]
Listener = Callable[[list[OptimisticArticle]], None]


# Actions dispatched to the store


@dataclass(frozen=True)
class Added:
    article: OptimisticArticle


@dataclass(frozen=True)
class Resolved:
    optimistic_id: str
    saved_item: SavedItemResponse | None


@dataclass(frozen=True)
class Failed:
    optimistic_id: str
    error: str
    error_code: str | None = None
    retryable: bool = True


@dataclass(frozen=True)
class Removed:
    optimistic_id: str


Action = Added | Resolved | Failed | Removed


def reduce_pending(
    pending: dict[str, OptimisticArticle], action: Action
) -> dict[str, OptimisticArticle]:
    """Apply one action to the pending entries. Unknown ids are ignored."""
    if isinstance(action, Added):
        return {**pending, action.article.optimistic_id: action.article}

    if isinstance(action, Removed):
        return {k: v for k, v in pending.items() if k != action.optimistic_id}

    current = pending.get(action.optimistic_id)
    if current is None:
        return pending
    if isinstance(action, Resolved):
        updated = replace(current, status=SubmissionStatus.SUCCESS, saved_item=action.saved_item)
    else:
        updated = replace(
            current,
            status=SubmissionStatus.ERROR,
            error=action.error,
            error_code=action.error_code,
            retryable=action.retryable,
        )
    return {**pending, action.optimistic_id: updated}


def merge_articles(
    pending: Sequence[OptimisticArticle], committed: Sequence[SavedItemResponse]
) -> list[Article]:
    """Pending entries newest first, then committed items by relevance and recency."""
    ordered_pending = sorted(pending, key=lambda a: a.submitted_at, reverse=True)
    ordered_committed = sorted(
        committed, key=lambda i: (i.relevance_score, i.saved_at), reverse=True
    )
    return [*ordered_pending, *ordered_committed]


class SubmissionCoordinator:
    """Store of optimistic submissions with subscribe/dispatch semantics."""

    def __init__(
        self,
        save: SaveFunc,
        success_linger: float = SUCCESS_LINGER_SECONDS,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self._save = save
        self._success_linger = success_linger
        self._clock = clock
        self._pending: dict[str, OptimisticArticle] = {}
        self._listeners: list[Listener] = []
        self._expiry_handles: dict[str, asyncio.TimerHandle] = {}

    @property
    def pending(self) -> list[OptimisticArticle]:
        """Pending entries, newest submission first."""
        return sorted(self._pending.values(), key=lambda a: a.submitted_at, reverse=True)

    def get(self, optimistic_id: str) -> OptimisticArticle | None:
        return self._pending.get(optimistic_id)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener called with the pending list after every change."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def dispatch(self, action: Action) -> None:
        self._pending = reduce_pending(self._pending, action)
        snapshot = self.pending
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Submission listener failed")

    def merged(self, committed: Sequence[SavedItemResponse]) -> list[Article]:
        return merge_articles(list(self._pending.values()), committed)

    async def submit(self, url: str) -> OptimisticArticle:
        """Track a new submission and wait for the server's answer.

        Returns the entry in its final state (success or error). Never raises.
        """
        article = OptimisticArticle(
            optimistic_id=uuid.uuid4().hex,
            url=url,
            status=SubmissionStatus.LOADING,
            submitted_at=self._clock(),
        )
        self.dispatch(Added(article))

        try:
            result = await self._save(url)
        except Exception:
            logger.exception("Submission of %s failed unexpectedly", url)
            self.dispatch(Failed(article.optimistic_id, UNEXPECTED_ERROR))
            return self._final(article)

        if result.success:
            self.dispatch(Resolved(article.optimistic_id, result.item))
            self._schedule_removal(article.optimistic_id)
        else:
            self.dispatch(
                Failed(
                    article.optimistic_id,
                    result.error or DEFAULT_SAVE_ERROR,
                    result.error_code,
                    retryable=result.retryable is not False,
                )
            )
        return self._final(article)

    async def retry(self, optimistic_id: str) -> OptimisticArticle | None:
        """Drop a failed entry and resubmit its URL under a new id.

        Terminal failures such as duplicates can only be dismissed.
        """
        current = self._pending.get(optimistic_id)
        if current is None or not current.can_retry:
            return None
        self.dispatch(Removed(optimistic_id))
        return await self.submit(current.url)

    def dismiss(self, optimistic_id: str) -> None:
        """Remove an entry without any further action."""
        handle = self._expiry_handles.pop(optimistic_id, None)
        if handle is not None:
            handle.cancel()
        self.dispatch(Removed(optimistic_id))

    def close(self) -> None:
        """Cancel pending removal timers."""
        for handle in self._expiry_handles.values():
            handle.cancel()
        self._expiry_handles.clear()

    def _final(self, article: OptimisticArticle) -> OptimisticArticle:
        return self._pending.get(article.optimistic_id, article)

    def _schedule_removal(self, optimistic_id: str) -> None:
        loop = asyncio.get_running_loop()
        self._expiry_handles[optimistic_id] = loop.call_later(
            self._success_linger, self._expire, optimistic_id
        )

    def _expire(self, optimistic_id: str) -> None:
        self._expiry_handles.pop(optimistic_id, None)
        self.dispatch(Removed(optimistic_id))
