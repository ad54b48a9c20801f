from __future__ import annotations

import pytest

from models.extracted_profile import ExtractedProfile
from utils.number_parsing import parse_float_shorthand, parse_int_shorthand


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("1.2K", 1200),
        ("500+", 500),
        ("3,400", 3400),
        ("2M", 2_000_000),
        ("500+ connections", 500),
        ("1,024 followers", 1024),
        (42, 42),
        (12.6, 13),
        ("", None),
        ("n/a", None),
        (None, None),
        (True, None),
    ],
)
def test_parse_int_shorthand(raw, expected):
    assert parse_int_shorthand(raw) == expected


def test_parse_float_keeps_fraction():
    assert parse_float_shorthand("12.5") == 12.5
    assert parse_float_shorthand("1.5k") == 1500.0


def test_profile_counts_are_sanitized():
    profile = ExtractedProfile.model_validate(
        {
            "profile": {"name": "Ada", "followersCount": "1.2K", "connectionsCount": "500+", "mutualConnections": "many"},
            "experience": [{"title": "Engineer"}],
            "activity": [{"type": "post", "likes": "1,100", "comments": 3, "shares": None}],
            "engagement": {"totalLikes": "2K", "averageLikes": "12.5", "totalShares": "-"},
        }
    )
    assert profile.profile.followers_count == 1200
    assert profile.profile.connections_count == 500
    assert profile.profile.mutual_connections is None
    assert profile.activity[0].likes == 1100
    assert profile.activity[0].shares is None
    assert profile.engagement.total_likes == 2000
    assert profile.engagement.average_likes == 12.5
    assert profile.engagement.total_shares is None
