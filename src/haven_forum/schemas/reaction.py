# src/haven_forum/schemas/reaction.py
"""Reaction-related Pydantic schemas."""

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict

from haven_forum.enums import ReactionType


class ReactionCreate(BaseModel):
    reaction_type: ReactionType


class ReactionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    post_id: uuid.UUID
    user_id: uuid.UUID
    reaction_type: ReactionType
    points_awarded: Decimal
    created_at: datetime
