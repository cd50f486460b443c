"""Channel-specific distribution compliance rules.

Rules are grouped in three tables keyed by ``Channel``:

* ``METADATA_REQUIREMENTS``: checks on a single release/track record before delivery
* ``RELEASE_COMPLIANCE``: checks over a release and its track list
* ``TRACK_PLATFORM_RULES``: checks on one track for platform delivery

Every table covers every channel; channels without rules map to ``_no_rules``.
Channel names that do not parse to a ``Channel`` are skipped.
"""

import logging
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional

from catalog_rules.core.validation import ValidationAccumulator
from catalog_rules.utils.validators import AudioSpecValidator, is_number

logger = logging.getLogger(__name__)

SPOTIFY_MIN_DURATION_MS = 30000
STREAMING_LOUDNESS_TARGET_LUFS = -14
STREAMING_MIN_DYNAMIC_RANGE = 7
MASTER_QUALITY_SAMPLE_RATE = 96000
MASTER_QUALITY_BIT_DEPTH = 24


class Channel(str, Enum):
    """Distribution channels with channel-specific rules."""
    SPOTIFY = "spotify"
    APPLE_MUSIC = "apple_music"
    YOUTUBE_MUSIC = "youtube_music"
    TIDAL = "tidal"
    AMAZON_MUSIC = "amazon_music"
    QOBUZ = "qobuz"
    DEEZER_HIFI = "deezer_hifi"


CHANNEL_ALIASES = {
    "apple": Channel.APPLE_MUSIC,
    "youtube": Channel.YOUTUBE_MUSIC,
    "amazon": Channel.AMAZON_MUSIC,
}

HIGH_QUALITY_CHANNELS = frozenset({Channel.TIDAL, Channel.QOBUZ, Channel.DEEZER_HIFI})
STREAMING_CHANNELS = frozenset({Channel.SPOTIFY, Channel.APPLE_MUSIC, Channel.YOUTUBE_MUSIC})

Rule = Callable[[ValidationAccumulator, dict], None]


def channel_name(channel: Any) -> Optional[str]:
    """Raw channel name from a string or a ``{"name": ...}`` mapping."""
    if isinstance(channel, dict):
        channel = channel.get("name")
    if isinstance(channel, Channel):
        return channel.value
    if not isinstance(channel, str):
        return None
    return channel


def parse_channel(channel: Any) -> Optional[Channel]:
    """Resolve a channel entry to a ``Channel``; unknown names give None."""
    name = channel_name(channel)
    if not name:
        return None

    key = name.strip().lower()
    if key in CHANNEL_ALIASES:
        return CHANNEL_ALIASES[key]
    try:
        return Channel(key)
    except ValueError:
        logger.debug(f"Ignoring unknown distribution channel: {name}")
        return None


def resolve_channels(channels: Optional[Iterable[Any]]) -> List[Channel]:
    """Parse a channel list, dropping unknown names and duplicates while keeping order."""
    resolved = []
    for channel in channels or []:
        parsed = parse_channel(channel)
        if parsed is not None and parsed not in resolved:
            resolved.append(parsed)
    return resolved


def _tracks(data: dict) -> List[dict]:
    tracks = data.get("tracks")
    if not isinstance(tracks, list):
        return []
    return [track for track in tracks if isinstance(track, dict)]


def _format(record: dict) -> Optional[str]:
    return AudioSpecValidator.normalize_format(record.get("audio_file_format"))


def _measure(record: dict, key: str) -> Optional[float]:
    """Numeric field value; missing or non-numeric values read as None."""
    value = record.get(key)
    return value if is_number(value) else None


def _no_rules(acc: ValidationAccumulator, data: dict) -> None:
    return None


# Metadata requirements

def _spotify_metadata(acc: ValidationAccumulator, data: dict) -> None:
    duration = _measure(data, "duration_ms")
    if duration and duration < SPOTIFY_MIN_DURATION_MS:
        acc.add_error(
            "spotify_track_too_short",
            "Spotify requires tracks to be at least 30 seconds",
            "duration"
        )

    if "explicit_content" not in data:
        acc.add_warning(
            "spotify_explicit_missing",
            "Spotify requires explicit content flag",
            "explicit_content"
        )


def _apple_metadata(acc: ValidationAccumulator, data: dict) -> None:
    if _format(data) == "mp3":
        acc.add_warning(
            "apple_mp3_quality",
            "Apple Music prefers lossless formats",
            "audio"
        )

    restrictions = data.get("territory_restrictions") or []
    if isinstance(restrictions, list) and "US" in restrictions:
        acc.add_warning(
            "apple_us_restriction",
            "US territory restriction may limit Apple Music reach",
            "territory_restrictions"
        )


def _youtube_metadata(acc: ValidationAccumulator, data: dict) -> None:
    if not data.get("copyright_notice"):
        acc.add_error(
            "youtube_copyright_required",
            "Copyright notice is required for YouTube Content ID",
            "copyright"
        )

    video_file = data.get("video_file")
    if video_file and not str(video_file).lower().endswith(".mp4"):
        acc.add_warning(
            "youtube_video_format",
            "MP4 format recommended for YouTube videos",
            "video_file"
        )


def _tidal_metadata(acc: ValidationAccumulator, data: dict) -> None:
    if _format(data) == "mp3":
        acc.add_warning(
            "tidal_quality_preference",
            "Tidal prefers high-quality lossless formats",
            "audio"
        )

    sample_rate = _measure(data, "sample_rate")
    if sample_rate and sample_rate < AudioSpecValidator.CD_SAMPLE_RATE:
        acc.add_error(
            "tidal_sample_rate",
            "Tidal requires a sample rate of at least 44.1kHz",
            "audio"
        )


def _amazon_metadata(acc: ValidationAccumulator, data: dict) -> None:
    if not data.get("upc"):
        acc.add_error("amazon_upc_required", "UPC is required for Amazon Music", "upc")

    if not data.get("genre"):
        acc.add_error("amazon_genre_required", "Genre is required for Amazon Music", "genre")


def _high_quality_metadata(acc: ValidationAccumulator, data: dict) -> None:
    audio_format = _format(data)
    if audio_format and not AudioSpecValidator.is_lossless(audio_format):
        acc.add_warning(
            "hq_lossless_preferred",
            "High-quality platforms prefer lossless formats",
            "audio"
        )


METADATA_REQUIREMENTS: Dict[Channel, Rule] = {
    Channel.SPOTIFY: _spotify_metadata,
    Channel.APPLE_MUSIC: _apple_metadata,
    Channel.YOUTUBE_MUSIC: _youtube_metadata,
    Channel.TIDAL: _tidal_metadata,
    Channel.AMAZON_MUSIC: _amazon_metadata,
    Channel.QOBUZ: _high_quality_metadata,
    Channel.DEEZER_HIFI: _high_quality_metadata,
}


# Release compliance

def _spotify_release(acc: ValidationAccumulator, data: dict) -> None:
    short_tracks = [
        track for track in _tracks(data)
        if 0 < (_measure(track, "duration_ms") or 0) < SPOTIFY_MIN_DURATION_MS
    ]
    if short_tracks:
        acc.add_error(
            "spotify_short_tracks",
            "Spotify requires tracks to be at least 30 seconds",
            "tracks"
        )

    if "explicit_content" not in data:
        acc.add_warning(
            "spotify_explicit_unmarked",
            "Explicit content marking is required for Spotify",
            "explicit_content"
        )


def _apple_release(acc: ValidationAccumulator, data: dict) -> None:
    if any(_format(track) == "mp3" for track in _tracks(data)):
        acc.add_warning(
            "apple_mp3_quality",
            "Apple Music prefers lossless formats over MP3",
            "tracks"
        )

    if not data.get("copyright_notice"):
        acc.add_error(
            "apple_copyright_required",
            "Copyright notice is required for Apple Music",
            "copyright_notice"
        )


def _youtube_release(acc: ValidationAccumulator, data: dict) -> None:
    if not data.get("copyright_notice"):
        acc.add_error(
            "youtube_copyright_required",
            "Copyright notice is required for YouTube Content ID",
            "copyright_notice"
        )

    video_url = data.get("music_video_url")
    if isinstance(video_url, str) and video_url and "youtube.com" not in video_url and "youtu.be" not in video_url:
        acc.add_warning(
            "youtube_video_external",
            "Music video should be hosted on YouTube for optimal integration",
            "music_video_url"
        )


def _tidal_release(acc: ValidationAccumulator, data: dict) -> None:
    tracks = _tracks(data)
    low_quality = [
        track for track in tracks
        if _format(track) == "mp3"
        or 0 < (_measure(track, "sample_rate") or 0) < AudioSpecValidator.CD_SAMPLE_RATE
    ]
    if low_quality:
        acc.add_warning(
            "tidal_quality_preference",
            "Tidal emphasizes high-quality audio (FLAC preferred)",
            "tracks"
        )

    if data.get("master_quality_available"):
        if not all(_meets_master_quality(track) for track in tracks):
            acc.add_error(
                "tidal_master_quality",
                "Master quality requires 96kHz/24-bit or higher",
                "tracks"
            )


def _high_quality_release(acc: ValidationAccumulator, data: dict) -> None:
    if any(_format(track) and not AudioSpecValidator.is_lossless(_format(track)) for track in _tracks(data)):
        acc.add_warning(
            "hq_lossless_preferred",
            "High-quality platforms prefer lossless formats",
            "tracks"
        )


RELEASE_COMPLIANCE: Dict[Channel, Rule] = {
    Channel.SPOTIFY: _spotify_release,
    Channel.APPLE_MUSIC: _apple_release,
    Channel.YOUTUBE_MUSIC: _youtube_release,
    Channel.TIDAL: _tidal_release,
    Channel.AMAZON_MUSIC: _amazon_metadata,
    Channel.QOBUZ: _high_quality_release,
    Channel.DEEZER_HIFI: _high_quality_release,
}


# Track platform rules

def _spotify_track(acc: ValidationAccumulator, track: dict) -> None:
    duration = _measure(track, "duration_ms")
    if duration and duration < SPOTIFY_MIN_DURATION_MS:
        acc.add_error(
            "spotify_duration_too_short",
            "Spotify requires tracks to be at least 30 seconds",
            "duration_ms"
        )

    sample_rate = _measure(track, "sample_rate")
    if sample_rate and sample_rate < AudioSpecValidator.CD_SAMPLE_RATE:
        acc.add_warning(
            "spotify_sample_rate_low",
            "Spotify recommends at least 44.1kHz sample rate",
            "sample_rate"
        )


def _meets_master_quality(track: dict) -> bool:
    return (
        (_measure(track, "sample_rate") or 0) >= MASTER_QUALITY_SAMPLE_RATE
        and (_measure(track, "bit_depth") or 0) >= MASTER_QUALITY_BIT_DEPTH
    )


def _apple_track(acc: ValidationAccumulator, track: dict) -> None:
    if _format(track) == "mp3":
        acc.add_warning(
            "apple_prefers_lossless",
            "Apple Music prefers lossless formats",
            "audio_file_format"
        )

    if _meets_master_quality(track):
        acc.add_info(
            "mastered_for_itunes_eligible",
            "Track meets Mastered for iTunes standards",
            "audio_quality"
        )


def _youtube_track(acc: ValidationAccumulator, track: dict) -> None:
    if not track.get("songwriter") and not track.get("composer"):
        acc.add_warning(
            "youtube_missing_songwriter",
            "Songwriter/composer credits help with Content ID",
            "credits"
        )

    if track.get("music_video_available"):
        acc.add_info(
            "youtube_video_advantage",
            "Music videos perform better on YouTube",
            "music_video"
        )


def _tidal_track(acc: ValidationAccumulator, track: dict) -> None:
    if _format(track) == "mp3":
        acc.add_warning(
            "tidal_quality_concern",
            "Tidal emphasizes high-quality audio (FLAC preferred)",
            "audio_file_format"
        )

    if _meets_master_quality(track):
        acc.add_info(
            "tidal_master_quality",
            "Track qualifies for Tidal Master quality",
            "audio_quality"
        )


def _amazon_track(acc: ValidationAccumulator, track: dict) -> None:
    if not track.get("genre"):
        acc.add_warning(
            "amazon_missing_genre",
            "Genre is important for Amazon Music categorization",
            "genre"
        )

    sample_rate = _measure(track, "sample_rate")
    if sample_rate and sample_rate < AudioSpecValidator.CD_SAMPLE_RATE:
        acc.add_warning(
            "amazon_sample_rate_low",
            "Amazon Music recommends CD quality or higher",
            "sample_rate"
        )


TRACK_PLATFORM_RULES: Dict[Channel, Rule] = {
    Channel.SPOTIFY: _spotify_track,
    Channel.APPLE_MUSIC: _apple_track,
    Channel.YOUTUBE_MUSIC: _youtube_track,
    Channel.TIDAL: _tidal_track,
    Channel.AMAZON_MUSIC: _amazon_track,
    Channel.QOBUZ: _no_rules,
    Channel.DEEZER_HIFI: _no_rules,
}


def check_high_quality_requirements(acc: ValidationAccumulator, track: dict) -> None:
    sample_rate = _measure(track, "sample_rate")
    if sample_rate and sample_rate < AudioSpecValidator.HI_RES_SAMPLE_RATE:
        acc.add_warning(
            "hq_sample_rate_low",
            "High-quality platforms prefer 96kHz or higher sample rates",
            "sample_rate"
        )

    bit_depth = _measure(track, "bit_depth")
    if bit_depth and bit_depth < MASTER_QUALITY_BIT_DEPTH:
        acc.add_warning(
            "hq_bit_depth_low",
            "High-quality platforms prefer 24-bit or higher bit depth",
            "bit_depth"
        )

    audio_format = _format(track)
    if audio_format and not AudioSpecValidator.is_lossless(audio_format):
        acc.add_warning(
            "hq_format_suboptimal",
            "High-quality platforms prefer lossless formats",
            "audio_file_format"
        )


def check_streaming_quality_requirements(acc: ValidationAccumulator, track: dict) -> None:
    lufs = _measure(track, "loudness_lufs")
    if lufs and lufs > STREAMING_LOUDNESS_TARGET_LUFS:
        acc.add_warning(
            "streaming_loudness_high",
            "Track may be reduced in level by streaming platform normalization",
            "loudness_lufs"
        )

    dynamic_range = _measure(track, "dynamic_range")
    if dynamic_range and dynamic_range < STREAMING_MIN_DYNAMIC_RANGE:
        acc.add_warning(
            "streaming_dynamic_range_low",
            "Low dynamic range may not perform well on streaming platforms",
            "dynamic_range"
        )


def apply_channel_rules(
    acc: ValidationAccumulator,
    table: Dict[Channel, Rule],
    data: dict,
    channels: Optional[Iterable[Any]]
) -> List[Channel]:
    """Run the rule for each recognised channel and return the channels that were checked."""
    resolved = resolve_channels(channels)
    for channel in resolved:
        table[channel](acc, data)
    return resolved


def _check_complete(table: Dict[Channel, Rule], name: str) -> None:
    missing = set(Channel) - set(table)
    if missing:
        raise RuntimeError(f"{name} has no rule for channels: {sorted(c.value for c in missing)}")


_check_complete(METADATA_REQUIREMENTS, "METADATA_REQUIREMENTS")
_check_complete(RELEASE_COMPLIANCE, "RELEASE_COMPLIANCE")
_check_complete(TRACK_PLATFORM_RULES, "TRACK_PLATFORM_RULES")
