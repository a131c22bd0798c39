# tests/test_reference.py
from datetime import timedelta
from decimal import Decimal

import pytest

from haven_forum.core.errors import EntityNotFound
from haven_forum.enums import ModerationAction, ReactionType
from haven_forum.models import count_words
from haven_forum.reference import REFERENCE_DATA


def test_reaction_points() -> None:
    assert REFERENCE_DATA.reaction(ReactionType.HELPFUL).reputation_points == Decimal("3")
    assert REFERENCE_DATA.reaction(ReactionType.RELATABLE).reputation_points == Decimal("1")
    assert all(
        definition.available_to(["member"]) for definition in REFERENCE_DATA.reactions.values()
    )


def test_unknown_template() -> None:
    with pytest.raises(EntityNotFound):
        REFERENCE_DATA.template("nonexistent")


def test_tier_for_roles_prefers_most_privileged() -> None:
    assert REFERENCE_DATA.tier_for_roles(["moderator", "admin"]).name == "admin"
    moderator = REFERENCE_DATA.tier_for_roles(["moderator"])
    assert moderator.max_mute_duration == timedelta(hours=24)
    assert not moderator.can_permanent_ban
    assert not moderator.allows(ModerationAction.USER_BANNED)
    assert REFERENCE_DATA.tier_for_roles(["member"]) is None


@pytest.mark.parametrize(
    ("content", "expected"),
    [("", 0), ("   ", 0), ("one", 1), ("  two\twords\n", 2)],
)
def test_count_words(content: str, expected: int) -> None:
    assert count_words(content) == expected
