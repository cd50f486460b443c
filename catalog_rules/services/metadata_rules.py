"""Metadata rules for releases and tracks."""

import re
from datetime import datetime, timedelta
from typing import Any, Iterable, Optional

from catalog_rules.core.settings import Settings, get_settings
from catalog_rules.core.validation import ValidationAccumulator, ValidationResult, fail_closed
from catalog_rules.services.distribution_rules import METADATA_REQUIREMENTS, apply_channel_rules
from catalog_rules.services.lifecycle import ReleaseStatus, parse_status
from catalog_rules.utils.validators import (
    AudioSpecValidator,
    DateValidator,
    ISRCValidator,
    LanguageValidator,
    TextValidator,
    UPCValidator,
    is_integer,
    is_number,
    utc_now,
)

RELEASE_TITLE_MAX_LENGTH = 200
TRACK_TITLE_MAX_LENGTH = 200
CATALOG_NUMBER_MAX_LENGTH = 50
CREDIT_MAX_LENGTH = 200
PUBLISHER_MAX_LENGTH = 100
LYRICS_MAX_LENGTH = 10000

RELEASE_TYPES = ("single", "ep", "album", "compilation", "soundtrack", "remix", "live")
RELEASE_FORMATS = ("digital", "physical", "vinyl", "cd", "cassette", "hybrid")

SINGLE_MAX_TRACKS = 3
EP_MAX_TRACKS = 8

VALID_GENRES = (
    "Alternative", "Blues", "Classical", "Country", "Dance", "Electronic",
    "Folk", "Hip-Hop", "Jazz", "Latin", "Metal", "Pop", "R&B", "Reggae",
    "Rock", "World", "Soundtrack", "Spoken Word", "Comedy", "Children"
)
VALID_LANGUAGES = ("en", "es", "fr", "de", "it", "pt", "ja", "ko", "zh", "ru", "ar", "hi")

VALID_KEYS = (
    "C", "C#", "Db", "D", "D#", "Eb", "E", "F", "F#", "Gb", "G", "G#", "Ab", "A", "A#", "Bb", "B",
    "Cm", "C#m", "Dbm", "Dm", "D#m", "Ebm", "Em", "Fm", "F#m", "Gbm", "Gm", "G#m", "Abm", "Am", "A#m", "Bbm", "Bm"
)
COMMON_TIME_SIGNATURES = ("2/4", "3/4", "4/4", "5/4", "6/8", "7/8", "9/8", "12/8")

CREDIT_FIELDS = (
    "songwriter", "composer", "lyricist", "producer", "mixer",
    "mastering_engineer", "recording_engineer", "arranger"
)

EXPLICIT_PATTERN = re.compile(
    r"\b(fuck\w*|shit\w*|bitch\w*|ass(hole)?s?|damn\w*|hell|crap\w*|piss\w*|bastards?|whores?|sluts?)\b",
    re.IGNORECASE
)

MIN_TRACK_WARNING_MS = 5000
MAX_TRACK_WARNING_MS = 30 * 60 * 1000
MAX_PREVIEW_MS = 90000

# Strict/premium thresholds
PEAK_CLIPPING_RISK_DB = -0.1
LOUDNESS_MAX_LUFS = -14
LOUDNESS_MIN_LUFS = -23
MIN_DYNAMIC_RANGE = 7


def release_track_count(data: dict) -> int:
    """Declared track count, falling back to the length of the track list."""
    track_count = data.get("track_count")
    if is_integer(track_count) and track_count > 0:
        return int(track_count)
    tracks = data.get("tracks")
    return len(tracks) if isinstance(tracks, list) else 0


def has_audio_file(record: dict) -> bool:
    return bool(record.get("audio_file_url") or record.get("audio_file") or record.get("audio_file_path"))


def has_explicit_language(lyrics: str) -> bool:
    return bool(EXPLICIT_PATTERN.search(lyrics))


# Release metadata

def check_release_title(acc: ValidationAccumulator, data: dict) -> None:
    title = data.get("title")

    if title is None or not isinstance(title, str):
        acc.add_error("missing_title", "Release title is required", "title")
        return

    if len(title.strip()) == 0:
        acc.add_error("title_too_short", "Release title cannot be empty", "title")
    elif len(title) > RELEASE_TITLE_MAX_LENGTH:
        acc.add_error(
            "title_too_long",
            f"Release title cannot exceed {RELEASE_TITLE_MAX_LENGTH} characters",
            "title"
        )

    if TextValidator.has_problematic_chars(title):
        acc.add_warning(
            "title_special_chars",
            "Title contains characters that may cause issues on some platforms",
            "title"
        )


def check_release_type_and_format(acc: ValidationAccumulator, data: dict) -> None:
    release_type = data.get("type")

    if not release_type:
        acc.add_error("missing_type", "Release type is required", "type")
    elif release_type not in RELEASE_TYPES:
        acc.add_error(
            "invalid_type",
            f"Invalid release type. Must be one of: {', '.join(RELEASE_TYPES)}",
            "type"
        )

    release_format = data.get("format")
    if release_format and release_format not in RELEASE_FORMATS:
        acc.add_error(
            "invalid_format",
            f"Invalid release format. Must be one of: {', '.join(RELEASE_FORMATS)}",
            "format"
        )

    declared_count = data.get("track_count")
    if declared_count is not None and (not is_integer(declared_count) or declared_count < 0):
        acc.add_error(
            "invalid_track_count",
            "Track count must be a non-negative integer",
            "track_count"
        )

    track_count = release_track_count(data)
    if release_type == "single" and track_count > SINGLE_MAX_TRACKS:
        acc.add_warning(
            "single_too_many_tracks",
            "Singles typically have 1-3 tracks",
            "type"
        )
    elif release_type == "ep" and track_count > EP_MAX_TRACKS:
        acc.add_warning(
            "ep_too_many_tracks",
            "EPs typically have 3-8 tracks",
            "type"
        )


def check_release_dates(acc: ValidationAccumulator, data: dict, now: datetime) -> None:
    raw_release_date = data.get("release_date")
    release_date = None

    if not raw_release_date:
        acc.add_error("missing_release_date", "Release date is required", "release_date")
    else:
        release_date = DateValidator.parse(raw_release_date)
        if release_date is None:
            acc.add_error("invalid_release_date", "Invalid release date format", "release_date")
        elif release_date < now - timedelta(days=365):
            acc.add_warning(
                "old_release_date",
                "Release date is more than a year in the past",
                "release_date"
            )
        elif release_date > now + timedelta(days=730):
            acc.add_warning(
                "future_release_date",
                "Release date is more than two years in the future",
                "release_date"
            )

    if data.get("original_release_date"):
        original_date = DateValidator.parse(data["original_release_date"])
        if original_date is None:
            acc.add_error(
                "invalid_original_date",
                "Invalid original release date format",
                "original_release_date"
            )
        elif release_date is not None and original_date > release_date:
            acc.add_error(
                "original_date_future",
                "Original release date cannot be after release date",
                "original_release_date"
            )

    if data.get("pre_order_date"):
        pre_order_date = DateValidator.parse(data["pre_order_date"])
        if pre_order_date is None:
            acc.add_error("invalid_preorder_date", "Invalid pre-order date format", "pre_order_date")
        elif release_date is not None and pre_order_date >= release_date:
            acc.add_error(
                "preorder_date_invalid",
                "Pre-order date must be before release date",
                "pre_order_date"
            )


def check_release_identifiers(acc: ValidationAccumulator, data: dict) -> None:
    upc = data.get("upc")
    if upc and not UPCValidator.is_valid(upc):
        acc.add_error("invalid_upc", "Invalid UPC code format or checksum", "upc")

    catalog_number = data.get("catalog_number")
    if catalog_number and len(str(catalog_number)) > CATALOG_NUMBER_MAX_LENGTH:
        acc.add_error(
            "catalog_too_long",
            f"Catalog number cannot exceed {CATALOG_NUMBER_MAX_LENGTH} characters",
            "catalog_number"
        )


def check_genre_and_language(acc: ValidationAccumulator, data: dict) -> None:
    genre = data.get("genre")
    if not genre:
        acc.add_warning("missing_genre", "Genre is recommended for better discoverability", "genre")
    elif genre not in VALID_GENRES:
        acc.add_warning("unknown_genre", f"Genre '{genre}' is not in standard list", "genre")

    language = data.get("language")
    if language and language not in VALID_LANGUAGES:
        acc.add_warning("unknown_language", f"Language '{language}' is not commonly supported", "language")


def check_copyright(acc: ValidationAccumulator, data: dict, now: datetime) -> None:
    copyright_notice = data.get("copyright_notice")
    if not copyright_notice:
        acc.add_warning("missing_copyright", "Copyright notice is recommended", "copyright")
    else:
        year = TextValidator.extract_year(str(copyright_notice))
        if year and (year < 1900 or year > now.year + 1):
            acc.add_warning("unusual_copyright_year", "Copyright year seems unusual", "copyright")

    if not data.get("phonographic_copyright"):
        acc.add_warning(
            "missing_phonographic",
            "Phonographic copyright is recommended",
            "phonographic_copyright"
        )


def check_release_metadata(acc: ValidationAccumulator, data: dict, now: datetime) -> None:
    """All release-level metadata rules."""
    check_release_title(acc, data)

    if not data.get("artist_id"):
        acc.add_error("missing_artist", "Artist is required", "artist")

    check_release_type_and_format(acc, data)
    check_release_dates(acc, data, now)
    check_release_identifiers(acc, data)
    check_genre_and_language(acc, data)
    check_copyright(acc, data, now)

    if not data.get("artwork_url") and not data.get("artwork_file"):
        acc.add_error("missing_artwork", "Artwork is required for release", "artwork")

    status = data.get("status")
    if status and parse_status(ReleaseStatus, status) is None:
        acc.add_error(
            "invalid_status",
            f"Invalid status. Must be one of: {', '.join(s.value for s in ReleaseStatus)}",
            "status"
        )


def check_premium_features(acc: ValidationAccumulator, data: dict) -> None:
    """Strict-mode checks for premium release features."""
    if data.get("dolby_atmos_available") and not data.get("dolby_atmos_file"):
        acc.add_error(
            "missing_dolby_atmos",
            "Dolby Atmos file required when Atmos is marked available",
            "dolby_atmos"
        )

    sample_rate = data.get("sample_rate")
    below_hi_res = not is_number(sample_rate) or sample_rate < AudioSpecValidator.HI_RES_SAMPLE_RATE
    if data.get("high_res_available") and below_hi_res:
        acc.add_warning(
            "high_res_quality",
            "High-res audio should be at least 96kHz",
            "audio"
        )

    if data.get("sync_licensing_available") and not data.get("instrumental_version"):
        acc.add_warning(
            "sync_instrumental",
            "Instrumental version recommended for sync licensing",
            "sync"
        )


# Track metadata

def check_track_basic_info(acc: ValidationAccumulator, track: dict, prefix: str = "") -> None:
    title = track.get("title")
    if not title or not isinstance(title, str):
        acc.add_error("missing_track_title", "Track title is required", f"{prefix}title")
    elif len(title.strip()) == 0:
        acc.add_error("track_title_empty", "Track title cannot be empty", f"{prefix}title")
    elif len(title) > TRACK_TITLE_MAX_LENGTH:
        acc.add_error(
            "track_title_long",
            f"Track title cannot exceed {TRACK_TITLE_MAX_LENGTH} characters",
            f"{prefix}title"
        )

    if "track_number" in track and track["track_number"] is not None:
        track_number = track["track_number"]
        if not is_integer(track_number) or track_number < 1:
            acc.add_error(
                "invalid_track_number",
                "Track number must be a positive integer",
                f"{prefix}track_number"
            )
        elif track_number > 999:
            acc.add_warning("high_track_number", "Unusually high track number", f"{prefix}track_number")

    if "disc_number" in track and track["disc_number"] is not None:
        disc_number = track["disc_number"]
        if not is_integer(disc_number) or disc_number < 1:
            acc.add_error(
                "invalid_disc_number",
                "Disc number must be a positive integer",
                f"{prefix}disc_number"
            )


def check_track_timing(acc: ValidationAccumulator, track: dict, prefix: str = "") -> None:
    duration = track.get("duration_ms")

    if "duration_ms" in track and duration is not None:
        if not is_integer(duration) or duration <= 0:
            acc.add_error("invalid_duration", "Duration must be a positive number", f"{prefix}duration")
        elif duration < MIN_TRACK_WARNING_MS:
            acc.add_warning(
                "very_short_track",
                "Track is very short (less than 5 seconds)",
                f"{prefix}duration"
            )
        elif duration > MAX_TRACK_WARNING_MS:
            acc.add_warning(
                "very_long_track",
                "Track is very long (more than 30 minutes)",
                f"{prefix}duration"
            )

    preview_start = track.get("preview_start_time")
    if preview_start is not None:
        if not is_number(preview_start):
            acc.add_error("invalid_preview_start", "Preview start time must be a number", f"{prefix}preview")
        elif preview_start < 0:
            acc.add_error("negative_preview_start", "Preview start time cannot be negative", f"{prefix}preview")
        elif is_number(duration) and duration > 0 and preview_start >= duration:
            acc.add_error(
                "preview_start_too_late",
                "Preview start time is beyond track duration",
                f"{prefix}preview"
            )

    preview_duration = track.get("preview_duration")
    if preview_duration is not None:
        if not is_number(preview_duration) or preview_duration <= 0:
            acc.add_error("invalid_preview_duration", "Preview duration must be positive", f"{prefix}preview")
        elif preview_duration > MAX_PREVIEW_MS:
            acc.add_warning("long_preview", "Preview is longer than 90 seconds", f"{prefix}preview")


def check_track_credits(acc: ValidationAccumulator, track: dict, prefix: str = "") -> None:
    for credit_field in CREDIT_FIELDS:
        value = track.get(credit_field)
        if isinstance(value, str) and len(value) > CREDIT_MAX_LENGTH:
            acc.add_warning(
                f"{credit_field}_too_long",
                f"{credit_field} field exceeds {CREDIT_MAX_LENGTH} characters",
                f"{prefix}{credit_field}"
            )

    publisher = track.get("publisher")
    if publisher and len(str(publisher)) > PUBLISHER_MAX_LENGTH:
        acc.add_warning(
            "publisher_too_long",
            f"Publisher name exceeds {PUBLISHER_MAX_LENGTH} characters",
            f"{prefix}publisher"
        )


def check_track_lyrics(
    acc: ValidationAccumulator,
    track: dict,
    prefix: str = "",
    detect_language: bool = False
) -> None:
    lyrics = track.get("lyrics")

    if lyrics:
        if len(lyrics) > LYRICS_MAX_LENGTH:
            acc.add_warning("lyrics_very_long", "Lyrics are very long", f"{prefix}lyrics")

        if has_explicit_language(lyrics) and not track.get("explicit_content"):
            acc.add_warning(
                "potential_explicit_content",
                "Lyrics may contain explicit content",
                f"{prefix}explicit"
            )

        lyrics_language = track.get("lyrics_language")
        if detect_language and lyrics_language:
            detected = LanguageValidator.detect_language(lyrics)
            if detected and detected != LanguageValidator.base_language(lyrics_language):
                acc.add_info(
                    "detected_lyrics_language",
                    f"Lyrics appear to be in '{detected}' but are tagged '{lyrics_language}'",
                    f"{prefix}lyrics_language",
                    details={"detected": detected, "declared": lyrics_language}
                )

    if track.get("lyrics_language") and track.get("language"):
        if track["lyrics_language"] != track["language"]:
            acc.add_warning(
                "language_mismatch",
                "Lyrics language differs from track language",
                f"{prefix}language"
            )

    if track.get("instrumental") and lyrics:
        acc.add_error("instrumental_with_lyrics", "Instrumental tracks cannot have lyrics", f"{prefix}lyrics")


def check_track_audio_file(acc: ValidationAccumulator, track: dict, prefix: str = "") -> None:
    if not track.get("audio_file_url") and not track.get("audio_file"):
        acc.add_error("missing_audio_file", "Audio file is required", f"{prefix}audio")

    audio_format = track.get("audio_file_format")
    if audio_format and AudioSpecValidator.normalize_format(audio_format) not in AudioSpecValidator.SUPPORTED_FORMATS:
        acc.add_error("invalid_audio_format", f"Unsupported audio format: {audio_format}", f"{prefix}audio")

    sample_rate = track.get("sample_rate")
    if sample_rate and not AudioSpecValidator.is_standard_sample_rate(sample_rate):
        acc.add_warning("unusual_sample_rate", f"Unusual sample rate: {sample_rate}Hz", f"{prefix}audio")

    bit_depth = track.get("bit_depth")
    if bit_depth and not AudioSpecValidator.is_standard_bit_depth(bit_depth):
        acc.add_warning("unusual_bit_depth", f"Unusual bit depth: {bit_depth}-bit", f"{prefix}audio")

    bitrate = track.get("audio_bitrate")
    if bitrate is not None and not is_number(bitrate):
        acc.add_error("invalid_bitrate", "Audio bitrate must be a number", f"{prefix}audio")
    elif AudioSpecValidator.normalize_format(audio_format) == "mp3" and bitrate and bitrate < 320:
        acc.add_warning("low_mp3_quality", "MP3 bitrate below 320kbps may affect quality", f"{prefix}audio")


def check_track_technical(acc: ValidationAccumulator, track: dict, prefix: str = "") -> None:
    tempo = track.get("tempo_bpm")
    if tempo is not None:
        if not is_number(tempo):
            acc.add_error("invalid_tempo", "Tempo must be a number", f"{prefix}tempo")
        elif tempo < 20 or tempo > 300:
            acc.add_warning("unusual_tempo", f"Unusual tempo: {tempo} BPM", f"{prefix}tempo")

    key_signature = track.get("key_signature")
    if key_signature and key_signature not in VALID_KEYS:
        acc.add_warning("invalid_key", f"Unrecognized key signature: {key_signature}", f"{prefix}key")

    time_signature = track.get("time_signature")
    if time_signature and time_signature not in COMMON_TIME_SIGNATURES:
        acc.add_warning(
            "unusual_time_signature",
            f"Unusual time signature: {time_signature}",
            f"{prefix}time_signature"
        )


def check_track_metadata(
    acc: ValidationAccumulator,
    track: dict,
    prefix: str = "",
    include_audio_file: bool = True,
    detect_language: bool = False
) -> None:
    """All track-level metadata rules."""
    check_track_basic_info(acc, track, prefix)
    check_track_timing(acc, track, prefix)
    check_track_credits(acc, track, prefix)
    check_track_lyrics(acc, track, prefix, detect_language)
    if include_audio_file:
        check_track_audio_file(acc, track, prefix)
    check_track_technical(acc, track, prefix)
    acc.extend(ISRCValidator.validate(track.get("isrc"), f"{prefix}isrc"))


def check_track_quality_standards(acc: ValidationAccumulator, track: dict, prefix: str = "") -> None:
    """Strict-mode audio quality standards.

    Loudness and dynamic-range codes already reported on the accumulator are not repeated.
    """
    peak = track.get("peak_amplitude")
    if is_number(peak) and peak > PEAK_CLIPPING_RISK_DB:
        acc.add_warning("audio_clipping_risk", "Peak level too high, risk of clipping", f"{prefix}audio")

    lufs = track.get("loudness_lufs")
    if is_number(lufs):
        if lufs > LOUDNESS_MAX_LUFS and not acc.has_code("loudness_too_high"):
            acc.add_warning("loudness_too_high", "Loudness above streaming platform targets", f"{prefix}audio")
        elif lufs < LOUDNESS_MIN_LUFS and not acc.has_code("loudness_too_low"):
            acc.add_warning("loudness_too_low", "Loudness below recommended levels", f"{prefix}audio")

    dynamic_range = track.get("dynamic_range")
    if is_number(dynamic_range) and dynamic_range < MIN_DYNAMIC_RANGE and not acc.has_code("low_dynamic_range"):
        acc.add_warning("low_dynamic_range", "Low dynamic range may affect audio quality", f"{prefix}audio")


class MetadataValidator:
    """Release and track metadata validation."""

    def __init__(self, settings: Optional[Settings] = None, now: Optional[datetime] = None):
        self.settings = settings or get_settings()
        self._now = now

    @property
    def now(self) -> datetime:
        return self._now or utc_now()

    def validate_release_metadata(self, data: dict, strict: bool = False) -> ValidationResult:
        acc = ValidationAccumulator()
        with fail_closed(acc, "metadata.validate_release_metadata"):
            check_release_metadata(acc, data, self.now)
            if strict:
                check_premium_features(acc, data)
        return acc.build_result()

    def validate_track_metadata(self, track: dict, strict: bool = False) -> ValidationResult:
        acc = ValidationAccumulator()
        with fail_closed(acc, "metadata.validate_track_metadata"):
            check_track_metadata(acc, track, detect_language=self.settings.detect_lyrics_language)
            if strict:
                check_track_quality_standards(acc, track)
        return acc.build_result()

    def validate_distribution_requirements(self, data: dict, channels: Iterable[Any]) -> ValidationResult:
        """Channel-dispatched checks; unknown channels are ignored."""
        acc = ValidationAccumulator()
        with fail_closed(acc, "metadata.validate_distribution_requirements"):
            apply_channel_rules(acc, METADATA_REQUIREMENTS, data, channels)
        return acc.build_result()
