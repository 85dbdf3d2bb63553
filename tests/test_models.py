from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from clipscout.core.models import Clip, is_global
from conftest import make_clip


def test_canonical_key_combines_platform_id_and_creator():
    assert make_clip("abc", platform="kick", creator="xqc").canonical_key == "kick:abc:xqc"


def test_blank_title_and_creator_get_defaults():
    clip = Clip(
        id="1",
        title="   ",
        url="https://clips.example/1",
        created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
        creator=None,
        platform="twitch",
    )
    assert clip.title == "Untitled Clip"
    assert clip.creator == "Unknown"


def test_platform_is_lowercased_and_rejects_separator():
    assert make_clip("1", platform="Twitch").platform == "twitch"
    with pytest.raises(ValidationError):
        make_clip("1", platform="tw:itch")


def test_negative_views_rejected():
    with pytest.raises(ValidationError):
        make_clip("1", views=-1)


def test_naive_timestamp_is_treated_as_utc():
    clip = Clip(
        id="1",
        title="t",
        url="u",
        created_at=datetime(2024, 3, 9, 23, 30),
        creator="c",
        platform="kick",
    )
    assert clip.created_at.tzinfo is timezone.utc
    assert clip.date_stamp == "2024-03-09"


def test_clip_is_frozen():
    clip = make_clip("1")
    with pytest.raises(ValidationError):
        clip.view_count = 5


@pytest.mark.parametrize("subject,expected", [("all", True), (" ALL ", True), ("allie", False), ("xqc", False)])
def test_is_global(subject, expected):
    assert is_global(subject) is expected


def test_numeric_title_is_rendered_as_text():
    assert make_clip("1", title=1234).title == "1234"


@pytest.mark.parametrize("value", [{"text": "x"}, ["x"], True])
def test_non_text_title_or_creator_is_a_validation_error(value):
    with pytest.raises(ValidationError):
        make_clip("1", title=value)
    with pytest.raises(ValidationError):
        make_clip("1", creator=value)
