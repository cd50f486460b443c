"""Tests for channel dispatch tables."""

import pytest

from catalog_rules.core.validation import ValidationAccumulator
from catalog_rules.services.distribution_rules import (
    METADATA_REQUIREMENTS,
    RELEASE_COMPLIANCE,
    TRACK_PLATFORM_RULES,
    Channel,
    apply_channel_rules,
    check_high_quality_requirements,
    check_streaming_quality_requirements,
    parse_channel,
    resolve_channels,
)


@pytest.mark.parametrize("table", [METADATA_REQUIREMENTS, RELEASE_COMPLIANCE, TRACK_PLATFORM_RULES])
def test_tables_cover_every_channel(table):
    assert set(table) == set(Channel)


@pytest.mark.parametrize("raw,expected", [
    ("spotify", Channel.SPOTIFY),
    (" Spotify ", Channel.SPOTIFY),
    ("apple", Channel.APPLE_MUSIC),
    ({"name": "youtube"}, Channel.YOUTUBE_MUSIC),
    (Channel.QOBUZ, Channel.QOBUZ),
    ("myspace", None),
    (None, None),
    (42, None),
])
def test_parse_channel(raw, expected):
    assert parse_channel(raw) == expected


def test_resolve_channels_drops_unknown_and_duplicates():
    resolved = resolve_channels(["tidal", "spotify", "Tidal", "napster"])
    assert resolved == [Channel.TIDAL, Channel.SPOTIFY]


def test_apply_channel_rules_returns_checked_channels():
    acc = ValidationAccumulator()
    checked = apply_channel_rules(acc, METADATA_REQUIREMENTS, {"explicit_content": False}, ["amazon", "unknown"])

    assert checked == [Channel.AMAZON_MUSIC]
    assert [issue.code for issue in acc.errors] == ["amazon_upc_required", "amazon_genre_required"]


def test_youtube_requires_copyright():
    acc = ValidationAccumulator()
    apply_channel_rules(acc, RELEASE_COMPLIANCE, {"music_video_url": "https://vimeo.com/1"}, ["youtube_music"])

    assert acc.has_code("youtube_copyright_required")
    assert acc.has_code("youtube_video_external")


def test_tidal_master_quality_requires_hi_res_tracks():
    acc = ValidationAccumulator()
    release = {
        "master_quality_available": True,
        "tracks": [{"sample_rate": 96000, "bit_depth": 24}, {"sample_rate": 44100, "bit_depth": 24}],
    }
    apply_channel_rules(acc, RELEASE_COMPLIANCE, release, ["tidal"])

    assert acc.has_code("tidal_master_quality")


@pytest.mark.parametrize("table", [METADATA_REQUIREMENTS, TRACK_PLATFORM_RULES])
def test_non_numeric_measurements_are_skipped(table):
    """Channel rules only compare measurements that are numbers."""
    acc = ValidationAccumulator()
    track = {
        "duration_ms": "29000",
        "sample_rate": "22050",
        "bit_depth": None,
        "upc": "036000291452",
        "genre": "Pop",
        "copyright_notice": "2025 Night Owl Records",
        "explicit_content": False,
    }
    apply_channel_rules(acc, table, track, list(Channel))

    assert not acc.has_code("spotify_track_too_short")
    assert not acc.has_code("spotify_duration_too_short")
    assert not any(issue.code.endswith("sample_rate") or issue.code.endswith("sample_rate_low") for issue in acc.errors + acc.warnings)


def test_streaming_quality_ignores_text_values():
    acc = ValidationAccumulator()
    check_streaming_quality_requirements(acc, {"loudness_lufs": "-9", "dynamic_range": "3"})
    check_high_quality_requirements(acc, {"sample_rate": "44100", "bit_depth": "16"})

    assert acc.errors == []
    assert acc.warnings == []
