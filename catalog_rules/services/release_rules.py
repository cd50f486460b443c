"""Release validation: creation, distribution and status transitions."""

import logging
from collections import Counter
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Iterable, List, Optional

from catalog_rules.core.settings import Settings, get_settings
from catalog_rules.core.validation import (
    Severity,
    ValidationAccumulator,
    ValidationResult,
    fail_closed,
)
from catalog_rules.services.distribution_rules import (
    RELEASE_COMPLIANCE,
    apply_channel_rules,
    channel_name,
)
from catalog_rules.services.lifecycle import (
    RELEASE_TRANSITIONS,
    ReleaseStatus,
    can_transition,
    parse_status,
)
from catalog_rules.services.metadata_rules import (
    EP_MAX_TRACKS,
    SINGLE_MAX_TRACKS,
    check_premium_features,
    check_release_metadata,
    release_track_count,
)
from catalog_rules.utils.validators import DateValidator, DuplicateDetector, is_integer, is_number, utc_now

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("title", "artist_id", "release_date", "type")
ARRAY_FIELDS = ("territories", "territory_restrictions", "marketing_tags", "mood_tags", "theme_tags")
OBJECT_FIELDS = ("metadata", "social_media_assets", "digital_format_details")

EP_MIN_TRACKS = 3
ALBUM_MIN_TRACKS = 7
COMPILATION_MIN_TRACKS = 10

PRICE_CATEGORIES = ("budget", "standard", "premium", "deluxe")

SUPPORTED_TERRITORIES = (
    "US", "CA", "GB", "DE", "FR", "IT", "ES", "NL", "BE", "CH", "AT",
    "SE", "NO", "DK", "FI", "AU", "NZ", "JP", "KR", "CN", "IN", "BR", "MX"
)
MAJOR_MARKETS = ("US", "GB", "DE", "JP")

DISTRIBUTION_REQUIRED_FIELDS = ("upc", "genre", "copyright_notice", "phonographic_copyright")
REVIEW_REQUIRED_FIELDS = ("title", "artist_id", "release_date", "type", "genre")

GLOBAL_TERRITORY = "global"

# Warning code -> recommendation
RECOMMENDATIONS = {
    "weekend_release": ("scheduling", "Consider releasing on Friday for maximum impact", "release_date"),
    "short_preorder_period": (
        "marketing", "Extend pre-order period to at least 2 weeks for better promotion", "pre_order_date"
    ),
    "scheduled_short_lead": (
        "scheduling", "Allow at least 2 weeks between scheduling and release date", "release_date"
    ),
    "ep_few_tracks": ("content", "Consider adding B-sides or remixes to increase value", "tracks"),
    "album_few_tracks": ("content", "Consider releasing as an EP or adding tracks", "tracks"),
    "missing_genre": ("discoverability", "Add a genre to improve playlist and store placement", "genre"),
    "missing_copyright": ("legal", "Add a copyright notice before distribution", "copyright_notice"),
    "limited_edition_no_size": ("commercial", "Specify the edition size for limited editions", "edition_size"),
    "possible_duplicate_titles": ("content", "Review tracks with near-identical titles", "tracks"),
}


def _tracks(data: dict) -> List[dict]:
    tracks = data.get("tracks")
    if not isinstance(tracks, list):
        return []
    return [track for track in tracks if isinstance(track, dict)]


def _release_date(data: dict) -> Optional[datetime]:
    return DateValidator.parse(data.get("release_date"))


# Creation stages

def check_release_structure(acc: ValidationAccumulator, data: dict) -> None:
    for field in REQUIRED_FIELDS:
        if not data.get(field):
            acc.add_error("missing_required_field", f"{field} is required", field)

    if data.get("title") and not isinstance(data["title"], str):
        acc.add_error("invalid_data_type", "Title must be a string", "title")

    if data.get("release_date") and not DateValidator.is_valid(data["release_date"]):
        acc.add_error("invalid_date_format", "Invalid release date format", "release_date")

    if "explicit_content" in data and data["explicit_content"] is not None:
        if not isinstance(data["explicit_content"], bool):
            acc.add_error("invalid_data_type", "Explicit content must be boolean", "explicit_content")

    for field in ARRAY_FIELDS:
        if data.get(field) is not None and not isinstance(data[field], list):
            acc.add_error("invalid_data_type", f"{field} must be an array", field)

    for field in OBJECT_FIELDS:
        if data.get(field) is not None and not isinstance(data[field], dict):
            acc.add_error("invalid_data_type", f"{field} must be an object", field)


def check_release_artist(acc: ValidationAccumulator, data: dict) -> None:
    artist_id = data.get("artist_id")
    if artist_id and not isinstance(artist_id, str):
        acc.add_error("invalid_artist_id", "Artist ID must be a string", "artist_id")


def check_track_in_release(acc: ValidationAccumulator, track: dict, position: int) -> None:
    prefix = f"Track {position}"

    if not track.get("title"):
        acc.add_error("missing_track_title", f"{prefix}: Title is required", "tracks")

    if not track.get("duration_ms"):
        acc.add_error("missing_track_duration", f"{prefix}: Duration is required", "tracks")

    track_number = track.get("track_number")
    if track_number is not None and not is_integer(track_number):
        acc.add_error("invalid_track_number", f"{prefix}: Track number must be an integer", "tracks")
    elif track_number and track_number != position:
        acc.add_warning(
            "track_number_mismatch",
            f"{prefix}: Track number ({track_number}) doesn't match position ({position})",
            "tracks"
        )

    if not track.get("audio_file_url") and not track.get("audio_file"):
        acc.add_error("missing_audio_file", f"{prefix}: Audio file is required", "tracks")


def _disc_number(track: dict) -> int:
    disc_number = track.get("disc_number")
    return int(disc_number) if is_integer(disc_number) and disc_number > 0 else 1


def check_track_sequence(acc: ValidationAccumulator, tracks: List[dict]) -> None:
    """Duplicate (disc, track) pairs are errors, numbering gaps per disc are warnings."""
    positions = Counter(
        (_disc_number(track), int(track["track_number"]))
        for track in tracks if is_integer(track.get("track_number")) and track["track_number"] > 0
    )
    duplicates = sorted(number for (disc, number), count in positions.items() if count > 1)
    if duplicates:
        acc.add_error(
            "duplicate_track_numbers",
            f"Duplicate track numbers found: {', '.join(str(n) for n in duplicates)}",
            "tracks"
        )

    discs: Dict[Any, List[int]] = {}
    for disc, number in positions:
        discs.setdefault(disc, []).append(number)

    for disc in sorted(discs):
        numbers = sorted(discs[disc])
        for previous, current in zip(numbers, numbers[1:]):
            if current - previous > 1:
                acc.add_warning(
                    "track_number_gap",
                    f"Track number gap in disc {disc}: {previous} to {current}",
                    "tracks"
                )


def check_duplicate_titles(acc: ValidationAccumulator, tracks: List[dict], threshold: float) -> None:
    titles = [
        (index + 1, track["title"]) for index, track in enumerate(tracks)
        if isinstance(track.get("title"), str) and track["title"].strip()
    ]
    for i, (first_position, first_title) in enumerate(titles):
        for second_position, second_title in titles[i + 1:]:
            if DuplicateDetector.is_potential_duplicate(first_title, second_title, threshold):
                acc.add_warning(
                    "possible_duplicate_titles",
                    f"Tracks {first_position} and {second_position} have very similar titles",
                    "tracks",
                    details={"titles": [first_title, second_title]}
                )


def check_release_tracks(acc: ValidationAccumulator, tracks: Any, duplicate_threshold: float) -> None:
    if not isinstance(tracks, list):
        acc.add_error("invalid_tracks_format", "Tracks must be an array", "tracks")
        return

    if len(tracks) == 0:
        acc.add_error("no_tracks", "Release must have at least one track", "tracks")
        return

    track_records = [track for track in tracks if isinstance(track, dict)]
    if len(track_records) != len(tracks):
        acc.add_error("invalid_tracks_format", "Each track must be an object", "tracks")

    for position, track in enumerate(track_records, start=1):
        check_track_in_release(acc, track, position)

    check_track_sequence(acc, track_records)
    check_duplicate_titles(acc, track_records, duplicate_threshold)


def check_release_date_constraints(
    acc: ValidationAccumulator,
    data: dict,
    now: datetime,
    settings: Settings
) -> None:
    release_date = _release_date(data)
    if release_date is None:
        return

    if release_date > now + timedelta(days=settings.max_release_lead_days):
        acc.add_error(
            "release_date_too_far",
            f"Release date cannot be more than {settings.max_release_lead_days} days in the future",
            "release_date"
        )

    pre_order_date = DateValidator.parse(data.get("pre_order_date"))
    if pre_order_date is not None and release_date - pre_order_date < timedelta(days=settings.preorder_min_days):
        acc.add_warning(
            "short_preorder_period",
            f"Pre-order period is less than {settings.preorder_min_days} days",
            "pre_order_date"
        )

    if release_date.weekday() >= 5:
        acc.add_warning(
            "weekend_release",
            "Weekend releases may receive less promotion attention",
            "release_date"
        )


def check_type_constraints(acc: ValidationAccumulator, data: dict) -> None:
    release_type = data.get("type")
    track_count = release_track_count(data)

    if release_type == "single":
        if track_count > SINGLE_MAX_TRACKS:
            acc.add_error(
                "single_too_many_tracks",
                f"Singles cannot have more than {SINGLE_MAX_TRACKS} tracks",
                "type"
            )
    elif release_type == "ep":
        if track_count > EP_MAX_TRACKS:
            acc.add_error("ep_too_many_tracks", f"EPs cannot have more than {EP_MAX_TRACKS} tracks", "type")
        if track_count < EP_MIN_TRACKS:
            acc.add_warning("ep_few_tracks", f"EPs typically have {EP_MIN_TRACKS} or more tracks", "type")
    elif release_type == "album":
        if track_count < ALBUM_MIN_TRACKS:
            acc.add_warning(
                "album_few_tracks",
                f"Albums typically have {ALBUM_MIN_TRACKS} or more tracks",
                "type"
            )
    elif release_type == "compilation":
        if track_count < COMPILATION_MIN_TRACKS:
            acc.add_warning(
                "compilation_few_tracks",
                f"Compilations typically have {COMPILATION_MIN_TRACKS} or more tracks",
                "type"
            )


def check_commercial_constraints(acc: ValidationAccumulator, data: dict) -> None:
    price_category = data.get("price_category")
    if price_category and price_category not in PRICE_CATEGORIES:
        acc.add_error(
            "invalid_price_category",
            f"Invalid price category. Must be one of: {', '.join(PRICE_CATEGORIES)}",
            "price_category"
        )

    if data.get("limited_edition") and not data.get("edition_size"):
        acc.add_warning(
            "limited_edition_no_size",
            "Limited edition should specify edition size",
            "edition_size"
        )

    if data.get("promotional") and price_category != "budget":
        acc.add_info(
            "promotional_price_category",
            "Promotional releases typically use budget price category",
            "promotional"
        )


def check_territory_constraints(acc: ValidationAccumulator, data: dict) -> None:
    restrictions = data.get("territory_restrictions")
    if not isinstance(restrictions, list):
        return

    unknown = [territory for territory in restrictions if territory not in SUPPORTED_TERRITORIES]
    if unknown:
        acc.add_warning(
            "invalid_territories",
            f"Unrecognized territory codes: {', '.join(str(t) for t in unknown)}",
            "territory_restrictions"
        )

    restricted_major = [territory for territory in restrictions if territory in MAJOR_MARKETS]
    if restricted_major:
        acc.add_warning(
            "major_market_restriction",
            f"Release restricted in major markets: {', '.join(restricted_major)}",
            "territory_restrictions"
        )


def check_business_rules(acc: ValidationAccumulator, data: dict, now: datetime, settings: Settings) -> None:
    check_release_date_constraints(acc, data, now, settings)
    check_type_constraints(acc, data)
    check_commercial_constraints(acc, data)
    check_territory_constraints(acc, data)


# Distribution stages

def check_distribution_readiness(acc: ValidationAccumulator, data: dict) -> None:
    status = parse_status(ReleaseStatus, data.get("status"))
    if status not in (ReleaseStatus.MASTERED, ReleaseStatus.DISTRIBUTED):
        acc.add_error("not_mastered", "Release must be mastered before distribution", "status")

    for field in DISTRIBUTION_REQUIRED_FIELDS:
        if not data.get(field):
            acc.add_error("missing_distribution_metadata", f"{field} is required for distribution", field)

    if not data.get("artwork_url") and not data.get("artwork_file"):
        acc.add_error("missing_artwork", "Artwork is required for distribution", "artwork")

    incomplete = [
        track for track in _tracks(data)
        if not (track.get("audio_file_url") or track.get("audio_file")) or not track.get("isrc")
    ]
    if incomplete:
        acc.add_error(
            "incomplete_tracks",
            f"{len(incomplete)} tracks missing audio files or ISRC codes",
            "tracks"
        )


def check_content_quality(acc: ValidationAccumulator, data: dict) -> None:
    for position, track in enumerate(_tracks(data), start=1):
        sample_rate = track.get("sample_rate")
        if is_number(sample_rate) and 0 < sample_rate < 44100:
            acc.add_warning("low_sample_rate", f"Track {position}: Sample rate below CD quality", "tracks")

        bit_depth = track.get("bit_depth")
        if is_number(bit_depth) and 0 < bit_depth < 16:
            acc.add_warning("low_bit_depth", f"Track {position}: Bit depth below CD quality", "tracks")

        duration = track.get("duration_ms")
        if is_number(duration) and 0 < duration < 30000:
            acc.add_warning(
                "short_track",
                f"Track {position}: Very short duration may affect streaming placement",
                "tracks"
            )

        lufs = track.get("loudness_lufs")
        if is_number(lufs) and lufs > -14:
            acc.add_warning(
                "loudness_high",
                f"Track {position}: May be too loud for streaming platforms",
                "tracks"
            )


def check_territory_rights(acc: ValidationAccumulator, data: dict, channels: Iterable[Any]) -> None:
    restrictions = data.get("territory_restrictions")
    if not restrictions or not isinstance(restrictions, list):
        return

    for channel in channels:
        territories = [GLOBAL_TERRITORY]
        if isinstance(channel, dict) and channel.get("territories"):
            territories = channel["territories"]

        if GLOBAL_TERRITORY in territories:
            continue

        conflicting = [territory for territory in territories if territory in restrictions]
        if conflicting:
            acc.add_warning(
                "territory_conflict",
                f"Release restricted in territories served by {channel_name(channel)}: {', '.join(conflicting)}",
                "territory_restrictions"
            )


# Status entry requirements

StatusRequirement = Callable[[ValidationAccumulator, dict, datetime, Settings], None]


def _no_requirements(acc: ValidationAccumulator, data: dict, now: datetime, settings: Settings) -> None:
    return None


def _in_review_requirements(acc: ValidationAccumulator, data: dict, now: datetime, settings: Settings) -> None:
    for field in REVIEW_REQUIRED_FIELDS:
        if not data.get(field):
            acc.add_error("review_missing_field", f"{field} is required for review submission", field)

    if isinstance(data.get("tracks"), list) and len(data["tracks"]) == 0:
        acc.add_error("review_no_tracks", "At least one track is required for review", "tracks")


def _approved_requirements(acc: ValidationAccumulator, data: dict, now: datetime, settings: Settings) -> None:
    if not data.get("artwork_url") and not data.get("artwork_file"):
        acc.add_error("approved_missing_artwork", "Artwork is required for approved releases", "artwork")

    if not data.get("upc"):
        acc.add_error("approved_missing_upc", "UPC is required for approved releases", "upc")


def _scheduled_requirements(acc: ValidationAccumulator, data: dict, now: datetime, settings: Settings) -> None:
    release_date = _release_date(data)

    if release_date is None or release_date <= now:
        acc.add_error(
            "scheduled_past_date",
            "Release date must be in the future for scheduled releases",
            "release_date"
        )
        return

    if release_date - now < timedelta(days=settings.scheduling_lead_days):
        acc.add_warning(
            "scheduled_short_lead",
            f"Less than {settings.scheduling_lead_days} days lead time for scheduled release",
            "release_date"
        )


def _mastered_requirements(acc: ValidationAccumulator, data: dict, now: datetime, settings: Settings) -> None:
    unmastered = [
        track for track in _tracks(data)
        if not track.get("mastering_engineer") or not track.get("audio_file_url")
    ]
    if unmastered:
        acc.add_error(
            "mastered_incomplete_tracks",
            "All tracks must be mastered with final audio files",
            "tracks"
        )


def _distributed_requirements(acc: ValidationAccumulator, data: dict, now: datetime, settings: Settings) -> None:
    if not data.get("distribution_channels"):
        acc.add_error(
            "distributed_no_channels",
            "At least one distribution channel is required",
            "distribution_channels"
        )


def _released_requirements(acc: ValidationAccumulator, data: dict, now: datetime, settings: Settings) -> None:
    release_date = _release_date(data)
    if release_date is not None and release_date > now:
        acc.add_warning(
            "released_future_date",
            "Release marked as released but release date is in the future",
            "release_date"
        )


STATUS_REQUIREMENTS: Dict[ReleaseStatus, StatusRequirement] = {
    ReleaseStatus.DRAFT: _no_requirements,
    ReleaseStatus.IN_REVIEW: _in_review_requirements,
    ReleaseStatus.REJECTED: _no_requirements,
    ReleaseStatus.APPROVED: _approved_requirements,
    ReleaseStatus.SCHEDULED: _scheduled_requirements,
    ReleaseStatus.POSTPONED: _no_requirements,
    ReleaseStatus.MASTERED: _mastered_requirements,
    ReleaseStatus.DISTRIBUTED: _distributed_requirements,
    ReleaseStatus.RELEASED: _released_requirements,
    ReleaseStatus.WITHDRAWN: _no_requirements,
    ReleaseStatus.CANCELLED: _no_requirements,
}

if set(STATUS_REQUIREMENTS) != set(ReleaseStatus):
    raise RuntimeError("STATUS_REQUIREMENTS must cover every release status")


class ReleaseValidator:
    """Release creation, distribution and lifecycle validation."""

    def __init__(self, settings: Optional[Settings] = None, now: Optional[datetime] = None):
        self.settings = settings or get_settings()
        self._now = now

    @property
    def now(self) -> datetime:
        return self._now or utc_now()

    def validate_for_creation(
        self,
        data: dict,
        validate_tracks: bool = True,
        validate_artist: bool = True,
        strict: bool = False
    ) -> ValidationResult:
        """Validate a complete release before it is created.

        Stages run in order and never short-circuit: structure, release
        metadata, artist reference, tracks, then business rules.
        """
        acc = ValidationAccumulator()
        now = self.now

        with fail_closed(acc, "release.validate_for_creation"):
            check_release_structure(acc, data)
            check_release_metadata(acc, data, now)
            if strict:
                check_premium_features(acc, data)

            if validate_artist:
                check_release_artist(acc, data)

            if validate_tracks and data.get("tracks") is not None:
                check_release_tracks(acc, data["tracks"], self.settings.duplicate_title_threshold)

            check_business_rules(acc, data, now, self.settings)

        result = acc.build_result()
        logger.debug(
            f"Release creation validation: {result.summary.error_count} errors, "
            f"{result.summary.warning_count} warnings"
        )
        return result

    def validate_for_distribution(
        self,
        data: dict,
        channels: Optional[Iterable[Any]] = None,
        validate_readiness: bool = True,
        validate_content: bool = True,
        validate_compliance: bool = True
    ) -> ValidationResult:
        """Validate a release for delivery to the given channels."""
        acc = ValidationAccumulator()
        channels = list(channels or [])

        with fail_closed(acc, "release.validate_for_distribution"):
            if validate_readiness:
                check_distribution_readiness(acc, data)
            if validate_content:
                check_content_quality(acc, data)
            if validate_compliance:
                apply_channel_rules(acc, RELEASE_COMPLIANCE, data, channels)
            check_territory_rights(acc, data, channels)

        return acc.build_result()

    def validate_status_transition(
        self,
        current_status: Any,
        next_status: Any,
        data: Optional[dict] = None
    ) -> ValidationResult:
        """Check a lifecycle edge, then the entry requirements of the target status."""
        acc = ValidationAccumulator()
        data = data or {}

        with fail_closed(acc, "release.validate_status_transition"):
            if not can_transition(RELEASE_TRANSITIONS, current_status, next_status):
                acc.add_error(
                    "invalid_transition",
                    f"Cannot transition from {current_status} to {next_status}",
                    "status"
                )

            target = parse_status(ReleaseStatus, next_status)
            if target is not None:
                STATUS_REQUIREMENTS[target](acc, data, self.now, self.settings)

        return acc.build_result()

    def get_recommendations(self, result: ValidationResult) -> List[Dict[str, str]]:
        """Turn known warnings into actionable recommendations."""
        recommendations = []
        seen = set()

        for warning in result.warnings:
            if warning.code in seen or warning.code not in RECOMMENDATIONS:
                continue
            seen.add(warning.code)
            category, message, field = RECOMMENDATIONS[warning.code]
            recommendations.append({
                "type": category,
                "message": message,
                "field": field,
                "source": warning.code,
                "severity": Severity.INFO.value,
            })

        return recommendations
