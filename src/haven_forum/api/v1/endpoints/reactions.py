# src/haven_forum/api/v1/endpoints/reactions.py
"""Reaction endpoints."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Response, status

from haven_forum.api.v1.dependencies import CurrentUserDep, SessionDep
from haven_forum.enums import ReactionType
from haven_forum.models import Reaction
from haven_forum.schemas.reaction import ReactionCreate, ReactionResponse
from haven_forum.services.content import ContentService

router = APIRouter(prefix="/posts", tags=["reactions"])
content_service = ContentService()


@router.post(
    "/{post_id}/reactions",
    response_model=ReactionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_reaction(
    post_id: uuid.UUID,
    payload: ReactionCreate,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> Reaction:
    """React to a post. Each user may use each reaction type once per post."""
    reaction = content_service.add_reaction(db, post_id, current_user.id, payload.reaction_type)
    db.commit()
    db.refresh(reaction)
    return reaction


@router.delete("/{post_id}/reactions/{reaction_type}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_reaction(
    post_id: uuid.UUID,
    reaction_type: ReactionType,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> Response:
    content_service.remove_reaction(db, post_id, current_user.id, reaction_type)
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
