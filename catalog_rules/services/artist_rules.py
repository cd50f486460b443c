"""Artist profile rules."""

import re
from typing import Optional

from catalog_rules.core.validation import ValidationAccumulator, ValidationResult, fail_closed
from catalog_rules.utils.validators import EmailValidator, PhoneValidator, URLValidator

ARTIST_NAME_MAX_LENGTH = 100
BIOGRAPHY_MAX_LENGTH = 5000
BIOGRAPHY_MIN_LENGTH = 50

ARTIST_TYPES = ("individual", "group", "band", "orchestra", "choir", "various", "unknown")
SOCIAL_PLATFORMS = ("instagram", "twitter", "facebook", "youtube", "tiktok", "spotify", "apple_music")

SPOTIFY_ID_PATTERN = re.compile(r"^[0-9A-Za-z]{22}$")


def check_artist_basic_info(acc: ValidationAccumulator, artist: dict) -> None:
    name = artist.get("name")
    if not name or not isinstance(name, str):
        acc.add_error("missing_artist_name", "Artist name is required", "name")
    elif len(name.strip()) == 0:
        acc.add_error("artist_name_empty", "Artist name cannot be empty", "name")
    elif len(name) > ARTIST_NAME_MAX_LENGTH:
        acc.add_error(
            "artist_name_long",
            f"Artist name cannot exceed {ARTIST_NAME_MAX_LENGTH} characters",
            "name"
        )

    artist_type = artist.get("type")
    if artist_type and artist_type not in ARTIST_TYPES:
        acc.add_error("invalid_artist_type", f"Invalid artist type: {artist_type}", "type")

    country = artist.get("country")
    if country and len(str(country)) != 2:
        acc.add_warning("invalid_country_code", "Country should be a 2-letter ISO code", "country")


def check_artist_identifiers(acc: ValidationAccumulator, artist: dict) -> None:
    spotify_id = artist.get("spotify_id")
    if spotify_id and not SPOTIFY_ID_PATTERN.match(str(spotify_id)):
        acc.add_warning("invalid_spotify_id", "Invalid Spotify artist ID format", "spotify_id")

    apple_music_id = artist.get("apple_music_id")
    if apple_music_id and not str(apple_music_id).strip().isdigit():
        acc.add_warning("invalid_apple_id", "Invalid Apple Music artist ID format", "apple_music_id")


def check_social_links(acc: ValidationAccumulator, social_links: dict) -> None:
    for platform in SOCIAL_PLATFORMS:
        link = social_links.get(platform)
        if link and not URLValidator.is_valid(link):
            acc.add_warning(f"invalid_{platform}_url", f"Invalid {platform} URL format", "social_links")


def check_biography(acc: ValidationAccumulator, biography) -> None:
    if not isinstance(biography, str):
        acc.add_error("invalid_biography_type", "Biography must be a string", "biography")
        return

    if len(biography) > BIOGRAPHY_MAX_LENGTH:
        acc.add_warning(
            "biography_too_long",
            f"Biography exceeds {BIOGRAPHY_MAX_LENGTH} characters",
            "biography"
        )
    if len(biography) < BIOGRAPHY_MIN_LENGTH:
        acc.add_warning("biography_too_short", "Biography is quite short", "biography")


def check_artist_contact(acc: ValidationAccumulator, artist: dict) -> None:
    email = artist.get("email")
    if email and not EmailValidator.is_valid(email):
        acc.add_warning("invalid_email", "Invalid email address", "email")

    acc.extend(PhoneValidator.validate(artist.get("phone"), artist.get("country")))


def check_artist_metadata(acc: ValidationAccumulator, artist: dict) -> None:
    """All artist profile rules."""
    check_artist_basic_info(acc, artist)
    check_artist_identifiers(acc, artist)

    social_links = artist.get("social_links")
    if isinstance(social_links, dict):
        check_social_links(acc, social_links)

    if "biography" in artist and artist["biography"] is not None:
        check_biography(acc, artist["biography"])

    check_artist_contact(acc, artist)


class ArtistValidator:
    """Artist profile validation."""

    def validate_for_creation(self, artist: dict) -> ValidationResult:
        acc = ValidationAccumulator()
        with fail_closed(acc, "artist.validate_for_creation"):
            check_artist_metadata(acc, artist)
        return acc.build_result()

    def validate_update(self, update_data: dict, existing: Optional[dict] = None) -> ValidationResult:
        """Validate an update merged over the existing profile."""
        merged = dict(existing or {})
        merged.update(update_data)
        return self.validate_for_creation(merged)
