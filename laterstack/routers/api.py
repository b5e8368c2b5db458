"""REST API endpoints for saving and triaging articles."""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from laterstack.auth import CallerSession, get_caller_session, require_session
from laterstack.errors import GENERIC_ERROR_MESSAGE, InvalidInput, LaterStackError
from laterstack.models.saved_item import SavedItem
from laterstack.models.user import User
from laterstack.schemas import (
    ActionResult,
    ItemCounts,
    ItemGroups,
    ItemListResponse,
    ProfileResponse,
    ProfileUpdateRequest,
    SaveArticleRequest,
    SavedItemResponse,
)
from laterstack.services.item_state import ItemStatus, get_item_state_service, item_status
from laterstack.services.listing import ItemFilter, get_listing_service, parse_filter
from laterstack.services.saver import get_save_article_service
from laterstack.services.users import get_user_provisioner
from laterstack.validation import Invalid, validate_profile

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["api"])


def item_to_response(item: SavedItem) -> SavedItemResponse:
    """Convert a SavedItem row to its API representation."""
    return SavedItemResponse(
        id=item.id,
        url=item.url,
        title=item.title,
        estimated_time=item.estimated_time,
        topics=item.topic_list,
        relevance_score=item.relevance_score,
        reasoning=item.reasoning,
        saved_at=item.saved_at,
        read_at=item.read_at,
        archived_at=item.archived_at,
        status=item_status(item).value,
    )


def _profile_to_response(user: User) -> ProfileResponse:
    return ProfileResponse(
        email=user.email,
        name=user.name,
        interests=user.interest_list,
        goals=user.goals,
        reading_speed=user.reading_speed,
    )


def error_response(error: LaterStackError) -> JSONResponse:
    """Uniform failure body for a known error."""
    body = ActionResult(
        success=False, error=error.message, error_code=error.code, retryable=error.retryable
    )
    return JSONResponse(status_code=error.status_code, content=body.model_dump(mode="json"))


def unexpected_error_response() -> JSONResponse:
    """Uniform failure body for anything unclassified. Details stay in the server log."""
    body = ActionResult(
        success=False, error=GENERIC_ERROR_MESSAGE, error_code="internal_error", retryable=True
    )
    return JSONResponse(status_code=500, content=body.model_dump(mode="json"))


@router.post("/articles", response_model=ActionResult)
async def save_article(
    body: SaveArticleRequest,
    session: CallerSession | None = Depends(get_caller_session),
):
    """Extract, analyze and save an article for the caller."""
    try:
        item = await get_save_article_service().save_article(session, body.url)
    except LaterStackError as e:
        logger.info("Save article failed (%s): %s", e.code, e.message)
        return error_response(e)
    except Exception:
        logger.exception("Error saving article %s", body.url)
        return unexpected_error_response()

    return ActionResult(success=True, item_id=item.id, item=item_to_response(item))


@router.get("/articles", response_model=ItemListResponse)
async def list_articles(
    filter: str = ItemFilter.ALL.value,
    session: CallerSession | None = Depends(get_caller_session),
):
    """List the caller's top items for a filter, plus counts for every filter."""
    try:
        listing = await get_listing_service().list_items(session, parse_filter(filter))
    except LaterStackError as e:
        return error_response(e)
    except Exception:
        logger.exception("Error listing articles")
        return unexpected_error_response()

    groups = None
    if listing.groups is not None:
        groups = ItemGroups(
            unread=[item_to_response(i) for i in listing.groups[ItemStatus.UNREAD]],
            read=[item_to_response(i) for i in listing.groups[ItemStatus.READ]],
            archived=[item_to_response(i) for i in listing.groups[ItemStatus.ARCHIVED]],
        )

    return ItemListResponse(
        filter=listing.filter.value,
        items=[item_to_response(i) for i in listing.items],
        counts=ItemCounts(
            all=listing.counts[ItemFilter.ALL],
            unread=listing.counts[ItemFilter.UNREAD],
            read=listing.counts[ItemFilter.READ],
            archived=listing.counts[ItemFilter.ARCHIVED],
            quick_read=listing.counts[ItemFilter.QUICK_READ],
        ),
        groups=groups,
    )


# State transitions

_TRANSITION_FAILURES = {
    "read": "Failed to mark article as read",
    "unread": "Failed to mark article as unread",
    "archive": "Failed to archive article",
    "unarchive": "Failed to unarchive article",
}


async def _transition(action: str, session: CallerSession | None, item_id: int):
    service = get_item_state_service()
    handlers = {
        "read": service.mark_read,
        "unread": service.mark_unread,
        "archive": service.archive,
        "unarchive": service.unarchive,
    }
    try:
        await handlers[action](session, item_id)
    except LaterStackError as e:
        return error_response(e)
    except Exception:
        logger.exception("Error applying %s to item %s", action, item_id)
        body = ActionResult(
            success=False,
            error=_TRANSITION_FAILURES[action],
            error_code="internal_error",
            retryable=True,
        )
        return JSONResponse(status_code=500, content=body.model_dump(mode="json"))
    return ActionResult(success=True, item_id=item_id)


@router.post("/articles/{item_id}/read", response_model=ActionResult)
async def mark_read(item_id: int, session: CallerSession | None = Depends(get_caller_session)):
    """Mark a saved article as read."""
    return await _transition("read", session, item_id)


@router.post("/articles/{item_id}/unread", response_model=ActionResult)
async def mark_unread(item_id: int, session: CallerSession | None = Depends(get_caller_session)):
    """Mark a saved article as unread."""
    return await _transition("unread", session, item_id)


@router.post("/articles/{item_id}/archive", response_model=ActionResult)
async def archive(item_id: int, session: CallerSession | None = Depends(get_caller_session)):
    """Archive a saved article."""
    return await _transition("archive", session, item_id)


@router.post("/articles/{item_id}/unarchive", response_model=ActionResult)
async def unarchive(item_id: int, session: CallerSession | None = Depends(get_caller_session)):
    """Unarchive a saved article."""
    return await _transition("unarchive", session, item_id)


# Profile endpoints


@router.get("/profile", response_model=ProfileResponse)
async def get_profile(session: CallerSession | None = Depends(get_caller_session)):
    """Get the caller's profile and reading preferences."""
    try:
        caller = require_session(session)
        user = await get_user_provisioner().resolve_user(caller.external_id)
    except LaterStackError as e:
        return error_response(e)
    return _profile_to_response(user)


@router.put("/profile", response_model=ActionResult)
async def update_profile(
    body: ProfileUpdateRequest,
    session: CallerSession | None = Depends(get_caller_session),
):
    """Update interests, goals and reading speed."""
    try:
        caller = require_session(session)
        validated = validate_profile(body.interests, body.goals, body.reading_speed)
        if isinstance(validated, Invalid):
            raise InvalidInput(validated.message)
        await get_user_provisioner().update_preferences(caller.external_id, validated.value)
    except LaterStackError as e:
        return error_response(e)
    except Exception:
        logger.exception("Error updating profile")
        body_out = ActionResult(
            success=False,
            error="Failed to update profile. Please try again.",
            error_code="internal_error",
            retryable=True,
        )
        return JSONResponse(status_code=500, content=body_out.model_dump(mode="json"))
    return ActionResult(success=True)
