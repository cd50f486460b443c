"""Track validation: creation, platform delivery and audio processing."""

import logging
from typing import Any, Dict, Iterable, Optional

from catalog_rules.core.settings import Settings, get_settings
from catalog_rules.core.validation import ValidationAccumulator, ValidationResult, fail_closed
from catalog_rules.services.distribution_rules import (
    HIGH_QUALITY_CHANNELS,
    STREAMING_CHANNELS,
    TRACK_PLATFORM_RULES,
    apply_channel_rules,
    check_high_quality_requirements,
    check_streaming_quality_requirements,
    resolve_channels,
)
from catalog_rules.services.metadata_rules import (
    COMMON_TIME_SIGNATURES,
    CREDIT_FIELDS,
    CREDIT_MAX_LENGTH,
    VALID_GENRES,
    VALID_KEYS,
    check_track_basic_info,
    check_track_lyrics,
    check_track_quality_standards,
    has_audio_file,
)
from catalog_rules.utils.validators import AudioSpecValidator, ISRCValidator, is_integer, is_number

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("title", "duration_ms", "track_number")
NUMERIC_FIELDS = (
    "tempo_bpm", "sample_rate", "bit_depth", "audio_channels",
    "audio_bitrate", "file_size_bytes", "preview_start_time", "preview_duration"
)
ARRAY_FIELDS = ("tags", "mood_tags", "genre_tags", "instrument_tags")
OBJECT_FIELDS = ("metadata", "external_ids")

MAX_FILE_SIZE_MB = 500
MIN_MB_PER_MINUTE = 5
MAX_MB_PER_MINUTE = 50

MIN_DURATION_SECONDS = 15
SHORT_DURATION_SECONDS = 30
LONG_DURATION_MINUTES = 10
EXTREME_DURATION_MINUTES = 20
RADIO_LENGTH_SECONDS = (180, 240)

TIME_SIGNATURES = COMMON_TIME_SIGNATURES + ("3/8", "5/8", "6/4", "7/4", "2/2", "3/2")

GENRE_TEMPO_RANGES = {
    "Hip-Hop": (70, 140),
    "House": (120, 130),
    "Techno": (120, 150),
    "Drum & Bass": (160, 180),
    "Reggae": (60, 90),
    "Country": (120, 170),
    "Rock": (110, 150),
    "Pop": (100, 130),
    "Jazz": (60, 200),
    "Classical": (40, 200),
}

CONTENT_TYPES = ("acoustic_version", "live_recording", "remix", "cover_version", "karaoke_version")
RECOMMENDED_FIELDS = (
    "genre", "mood", "tempo_bpm", "key_signature", "isrc",
    "songwriter", "producer", "language"
)


def _duration_ms(track: dict) -> Optional[float]:
    duration = track.get("duration_ms")
    return duration if is_number(duration) else None


def estimate_file_size(track: dict, bitrate_kbps: Optional[int] = None) -> Optional[Dict[str, float]]:
    """Uncompressed PCM size, or a bitrate-based size when ``bitrate_kbps`` is given."""
    duration = _duration_ms(track)
    if not duration:
        return None

    seconds = duration / 1000
    if bitrate_kbps:
        estimated_bytes = seconds * bitrate_kbps * 1000 / 8
    else:
        sample_rate = track.get("sample_rate")
        bit_depth = track.get("bit_depth")
        channels = track.get("audio_channels")
        if not (is_number(sample_rate) and is_number(bit_depth) and is_number(channels)):
            return None
        if not (sample_rate and bit_depth and channels):
            return None
        estimated_bytes = seconds * sample_rate * bit_depth * channels / 8

    return {
        "bytes": round(estimated_bytes),
        "mb": round(estimated_bytes / (1024 * 1024), 2),
    }


def assess_audio_quality(track: dict) -> str:
    sample_rate = track.get("sample_rate")
    bit_depth = track.get("bit_depth")
    if not is_number(sample_rate) or not is_number(bit_depth) or not sample_rate or not bit_depth:
        return "unknown"

    if sample_rate >= 96000 and bit_depth >= 24:
        return "hi_res"
    if sample_rate >= 48000 and bit_depth >= 24:
        return "studio"
    if sample_rate >= 44100 and bit_depth >= 16:
        return "cd"
    return "low"


def assess_streaming_readiness(track: dict) -> Dict[str, Any]:
    issues = []
    duration = _duration_ms(track)
    if duration and duration < SHORT_DURATION_SECONDS * 1000:
        issues.append("too_short")

    lufs = track.get("loudness_lufs")
    if is_number(lufs) and lufs > -14:
        issues.append("too_loud")

    if not track.get("isrc"):
        issues.append("missing_isrc")

    return {"ready": not issues, "issues": issues}


def assess_hd_readiness(track: dict) -> Dict[str, Any]:
    missing = []
    sample_rate = track.get("sample_rate")
    if not is_number(sample_rate) or sample_rate < AudioSpecValidator.HI_RES_SAMPLE_RATE:
        missing.append("96kHz+ sample rate")

    bit_depth = track.get("bit_depth")
    if not is_number(bit_depth) or bit_depth < 24:
        missing.append("24-bit+ bit depth")

    if not AudioSpecValidator.is_lossless(track.get("audio_file_format")):
        missing.append("lossless format")

    return {"ready": not missing, "missing_requirements": missing}


# Structure

def check_track_structure(acc: ValidationAccumulator, track: dict) -> None:
    for field in REQUIRED_FIELDS:
        if track.get(field) is None:
            acc.add_error("missing_required_field", f"{field} is required", field)

    if track.get("title") is not None and not isinstance(track["title"], str):
        acc.add_error("invalid_data_type", "Title must be a string", "title")

    if track.get("duration_ms") is not None and not is_integer(track["duration_ms"]):
        acc.add_error("invalid_data_type", "Duration must be an integer", "duration_ms")

    if track.get("track_number") is not None and not is_integer(track["track_number"]):
        acc.add_error("invalid_data_type", "Track number must be an integer", "track_number")

    if track.get("explicit_content") is not None and not isinstance(track["explicit_content"], bool):
        acc.add_error("invalid_data_type", "Explicit content must be boolean", "explicit_content")

    for field in NUMERIC_FIELDS:
        if track.get(field) is not None and not is_number(track[field]):
            acc.add_error("invalid_numeric_value", f"{field} must be a valid number", field)

    for field in ARRAY_FIELDS:
        if track.get(field) is not None and not isinstance(track[field], list):
            acc.add_error("invalid_data_type", f"{field} must be an array", field)

    for field in OBJECT_FIELDS:
        if track.get(field) is not None and not isinstance(track[field], dict):
            acc.add_error("invalid_data_type", f"{field} must be an object", field)


# Audio file

def check_audio_file_format(acc: ValidationAccumulator, track: dict) -> None:
    if not track.get("audio_file_format"):
        acc.add_warning("missing_audio_format", "Audio file format not specified", "audio_file_format")
        return

    audio_format = AudioSpecValidator.normalize_format(track["audio_file_format"])

    if audio_format not in AudioSpecValidator.SUPPORTED_FORMATS:
        acc.add_error(
            "unsupported_audio_format",
            f"Unsupported audio format: {track['audio_file_format']}",
            "audio_file_format"
        )
        return

    if audio_format in AudioSpecValidator.COMPRESSED_FORMATS:
        acc.add_warning(
            "compressed_audio_format",
            "Compressed audio formats may reduce quality",
            "audio_file_format"
        )
        if audio_format == "mp3" and track.get("audio_bitrate"):
            acc.extend(AudioSpecValidator.validate_mp3_bitrate(track["audio_bitrate"]))

    if not AudioSpecValidator.is_lossless(audio_format):
        acc.add_warning(
            "recommend_lossless",
            "Lossless formats (WAV, FLAC) are recommended for best quality",
            "audio_file_format"
        )


def check_audio_file_size(acc: ValidationAccumulator, track: dict) -> None:
    file_size = track.get("file_size_bytes")
    if not file_size or not is_number(file_size):
        acc.add_warning("missing_file_size", "File size not specified", "file_size_bytes")
        return

    file_size_mb = file_size / (1024 * 1024)
    duration_minutes = (_duration_ms(track) or 0) / 60000

    if file_size_mb > MAX_FILE_SIZE_MB:
        acc.add_error(
            "file_too_large",
            f"File size ({file_size_mb:.1f}MB) exceeds maximum ({MAX_FILE_SIZE_MB}MB)",
            "file_size_bytes"
        )

    if duration_minutes > 0:
        if file_size_mb < duration_minutes * MIN_MB_PER_MINUTE:
            acc.add_warning(
                "file_possibly_low_quality",
                "File size seems low for duration, check audio quality",
                "file_size_bytes"
            )
        if file_size_mb > duration_minutes * MAX_MB_PER_MINUTE:
            acc.add_warning(
                "file_unnecessarily_large",
                "File size seems excessive for duration",
                "file_size_bytes"
            )

    estimate = estimate_file_size(track)
    if estimate:
        acc.add_info(
            "file_size_estimate",
            f"Expected uncompressed size is about {estimate['mb']}MB",
            "file_size_bytes",
            details=estimate
        )


def check_audio_specifications(acc: ValidationAccumulator, track: dict) -> None:
    sample_rate = track.get("sample_rate")
    if sample_rate and is_number(sample_rate):
        if not AudioSpecValidator.is_standard_sample_rate(sample_rate):
            acc.add_warning("unusual_sample_rate", f"Unusual sample rate: {sample_rate}Hz", "sample_rate")
        if sample_rate < AudioSpecValidator.CD_SAMPLE_RATE:
            acc.add_warning("low_sample_rate", "Sample rate below CD quality (44.1kHz)", "sample_rate")

    bit_depth = track.get("bit_depth")
    if bit_depth and is_number(bit_depth):
        if not AudioSpecValidator.is_standard_bit_depth(bit_depth):
            acc.add_warning("unusual_bit_depth", f"Unusual bit depth: {bit_depth}-bit", "bit_depth")
        if bit_depth < 16:
            acc.add_error("insufficient_bit_depth", "Bit depth below 16-bit is not acceptable", "bit_depth")

    channels = track.get("audio_channels")
    if channels and is_number(channels):
        if channels < 1 or channels > 8:
            acc.add_error("invalid_channel_count", "Audio channels must be between 1 and 8", "audio_channels")
        if channels > 2:
            acc.add_warning(
                "multichannel_audio",
                "Multichannel audio may not be supported by all platforms",
                "audio_channels"
            )


def check_audio_file(acc: ValidationAccumulator, track: dict) -> None:
    if not has_audio_file(track):
        acc.add_error("missing_audio_file", "Audio file is required", "audio_file")
        return

    check_audio_file_format(acc, track)
    check_audio_file_size(acc, track)
    check_audio_specifications(acc, track)


# Technical

def check_duration(acc: ValidationAccumulator, track: dict) -> None:
    if not track.get("duration_ms"):
        acc.add_error("missing_duration", "Track duration is required", "duration_ms")
        return

    duration = _duration_ms(track)
    if duration is None:
        return

    seconds = duration / 1000
    minutes = seconds / 60

    if seconds < MIN_DURATION_SECONDS:
        acc.add_error(
            "track_too_short",
            f"Track must be at least {MIN_DURATION_SECONDS} seconds long",
            "duration_ms"
        )
    elif seconds < SHORT_DURATION_SECONDS:
        acc.add_warning(
            "track_very_short",
            "Tracks under 30 seconds may not be accepted by some platforms",
            "duration_ms"
        )

    if minutes > LONG_DURATION_MINUTES:
        acc.add_warning("track_very_long", "Tracks over 10 minutes may have limited radio play", "duration_ms")

    if minutes > EXTREME_DURATION_MINUTES:
        acc.add_warning(
            "track_extremely_long",
            "Tracks over 20 minutes may affect streaming algorithm placement",
            "duration_ms"
        )

    if RADIO_LENGTH_SECONDS[0] < seconds < RADIO_LENGTH_SECONDS[1]:
        acc.add_info("optimal_radio_length", "Track length is optimal for radio play", "duration_ms")


def check_audio_levels(acc: ValidationAccumulator, track: dict) -> None:
    peak = track.get("peak_amplitude")
    if is_number(peak):
        if peak > 0:
            acc.add_error("peak_clipping", "Peak amplitude above 0dB indicates clipping", "peak_amplitude")
        elif peak > -0.1:
            acc.add_warning(
                "peak_near_clipping",
                "Peak amplitude very close to 0dB, risk of clipping",
                "peak_amplitude"
            )
        elif peak < -6:
            acc.add_warning("peak_too_low", "Peak amplitude very low, track may sound quiet", "peak_amplitude")

    rms = track.get("rms_amplitude")
    if is_number(rms):
        if rms > -6:
            acc.add_warning("rms_too_high", "RMS level very high, may indicate over-compression", "rms_amplitude")
        elif rms < -20:
            acc.add_warning("rms_too_low", "RMS level very low, track may sound weak", "rms_amplitude")

    lufs = track.get("loudness_lufs")
    if is_number(lufs):
        if lufs > -14:
            acc.add_warning(
                "loudness_too_high",
                "Track louder than -14 LUFS may be reduced by streaming platforms",
                "loudness_lufs"
            )
        elif lufs < -23:
            acc.add_warning(
                "loudness_too_low",
                "Track quieter than -23 LUFS may sound weak on streaming platforms",
                "loudness_lufs"
            )

    dynamic_range = track.get("dynamic_range")
    if is_number(dynamic_range):
        if dynamic_range < 4:
            acc.add_warning(
                "low_dynamic_range",
                "Very low dynamic range indicates heavy compression",
                "dynamic_range"
            )
        elif dynamic_range > 20:
            acc.add_warning(
                "high_dynamic_range",
                "Very high dynamic range may not translate well to all playback systems",
                "dynamic_range"
            )


def check_tempo_for_genre(acc: ValidationAccumulator, genre: str, tempo: float) -> None:
    tempo_range = GENRE_TEMPO_RANGES.get(genre)
    if tempo_range and not tempo_range[0] <= tempo <= tempo_range[1]:
        acc.add_warning(
            "tempo_unusual_for_genre",
            f"Tempo {tempo} BPM is unusual for {genre} "
            f"(typical range: {tempo_range[0]}-{tempo_range[1]} BPM)",
            "tempo_bpm"
        )


def check_tempo_and_timing(acc: ValidationAccumulator, track: dict) -> None:
    tempo = track.get("tempo_bpm")
    if tempo is not None:
        if not is_number(tempo) or tempo <= 0:
            acc.add_error("invalid_tempo", "Tempo must be a positive number", "tempo_bpm")
        else:
            if tempo < 20 or tempo > 300:
                acc.add_warning("unusual_tempo", f"Unusual tempo: {tempo} BPM", "tempo_bpm")
            if track.get("genre"):
                check_tempo_for_genre(acc, track["genre"], tempo)

    time_signature = track.get("time_signature")
    if time_signature and time_signature not in TIME_SIGNATURES:
        acc.add_warning(
            "unusual_time_signature",
            f"Unusual time signature: {time_signature}",
            "time_signature"
        )

    duration_seconds = (_duration_ms(track) or 0) / 1000

    preview_start = track.get("preview_start_time")
    if is_number(preview_start):
        start_seconds = preview_start / 1000
        if start_seconds < 0:
            acc.add_error(
                "negative_preview_start",
                "Preview start time cannot be negative",
                "preview_start_time"
            )
        elif start_seconds >= duration_seconds:
            acc.add_error(
                "preview_start_beyond_end",
                "Preview start time is beyond track duration",
                "preview_start_time"
            )

        if duration_seconds > 60 and start_seconds < 15:
            acc.add_warning(
                "preview_start_too_early",
                "Preview may start too early, consider starting after intro",
                "preview_start_time"
            )

    preview_duration = track.get("preview_duration")
    if is_number(preview_duration):
        if preview_duration <= 0:
            acc.add_error("invalid_preview_duration", "Preview duration must be positive", "preview_duration")
        elif preview_duration < 15000:
            acc.add_warning(
                "short_preview",
                "Preview shorter than 15 seconds may not be effective",
                "preview_duration"
            )
        elif preview_duration > 90000:
            acc.add_warning(
                "long_preview",
                "Preview longer than 90 seconds may violate platform policies",
                "preview_duration"
            )


def check_key_and_harmonics(acc: ValidationAccumulator, track: dict) -> None:
    key_signature = track.get("key_signature")
    if key_signature and key_signature not in VALID_KEYS:
        acc.add_warning(
            "unrecognized_key",
            f"Unrecognized key signature: {key_signature}",
            "key_signature"
        )

    centroid = track.get("spectral_centroid")
    if is_number(centroid) and (centroid < 500 or centroid > 8000):
        acc.add_warning("unusual_spectral_centroid", "Unusual spectral centroid value", "spectral_centroid")

    zero_crossing_rate = track.get("zero_crossing_rate")
    if is_number(zero_crossing_rate) and not 0 <= zero_crossing_rate <= 1:
        acc.add_warning(
            "invalid_zero_crossing_rate",
            "Zero crossing rate should be between 0 and 1",
            "zero_crossing_rate"
        )


def check_technical_requirements(acc: ValidationAccumulator, track: dict) -> None:
    check_duration(acc, track)
    check_audio_levels(acc, track)
    check_tempo_and_timing(acc, track)
    check_key_and_harmonics(acc, track)


# Content

def check_lyrics_content(acc: ValidationAccumulator, track: dict, detect_language: bool) -> None:
    check_track_lyrics(acc, track, detect_language=detect_language)

    if track.get("instrumental") and track.get("lyricist"):
        acc.add_warning(
            "instrumental_with_lyricist",
            "Instrumental tracks typically do not have lyricists",
            "lyricist"
        )


def check_content_classification(acc: ValidationAccumulator, track: dict) -> None:
    if "explicit_content" not in track:
        acc.add_warning(
            "explicit_content_unspecified",
            "Explicit content classification should be specified",
            "explicit_content"
        )

    genre = track.get("genre")
    if genre and genre not in VALID_GENRES:
        acc.add_warning("unrecognized_genre", f"Unrecognized genre: {genre}", "genre")

    flagged = [content_type for content_type in CONTENT_TYPES if track.get(content_type)]
    if len(flagged) > 1:
        acc.add_warning(
            "multiple_content_types",
            f"Multiple content types specified: {', '.join(flagged)}",
            "content_type"
        )


def check_credits_content(acc: ValidationAccumulator, track: dict) -> None:
    for field in CREDIT_FIELDS:
        value = track.get(field)
        if not value:
            continue
        if not isinstance(value, str):
            acc.add_error("invalid_credit_type", f"{field} must be a string", field)
        elif len(value) > CREDIT_MAX_LENGTH:
            acc.add_warning("credit_too_long", f"{field} exceeds {CREDIT_MAX_LENGTH} characters", field)

    if not track.get("songwriter") and not track.get("composer"):
        acc.add_warning(
            "missing_songwriting_credits",
            "Songwriter or composer credits are recommended",
            "credits"
        )

    if not track.get("producer"):
        acc.add_warning("missing_producer_credit", "Producer credit is recommended", "producer")


def check_metadata_completeness(acc: ValidationAccumulator, track: dict) -> None:
    missing = [field for field in RECOMMENDED_FIELDS if not track.get(field)]
    if missing:
        acc.add_info(
            "incomplete_metadata",
            f"Consider adding: {', '.join(missing)}",
            "metadata",
            details={"missing_fields": missing}
        )

    if not track.get("isrc"):
        acc.add_warning("missing_isrc", "ISRC code is required for distribution", "isrc")


def check_content_requirements(acc: ValidationAccumulator, track: dict, detect_language: bool) -> None:
    check_lyrics_content(acc, track, detect_language)
    check_content_classification(acc, track)
    check_credits_content(acc, track)
    check_metadata_completeness(acc, track)


# Audio processing

def check_processing_format(acc: ValidationAccumulator, track: dict, target_format: Optional[str]) -> None:
    source_format = AudioSpecValidator.normalize_format(track.get("audio_file_format"))

    if not source_format:
        acc.add_warning("missing_audio_format", "Audio file format not specified", "audio_file_format")
    elif source_format not in AudioSpecValidator.SUPPORTED_FORMATS:
        acc.add_error(
            "unsupported_audio_format",
            f"Unsupported source format: {track['audio_file_format']}",
            "audio_file_format"
        )

    if target_format is None:
        return

    normalized_target = AudioSpecValidator.normalize_format(target_format)
    if normalized_target not in AudioSpecValidator.SUPPORTED_FORMATS:
        acc.add_error(
            "unsupported_audio_format",
            f"Unsupported target format: {target_format}",
            "target_format"
        )
        return

    if source_format and not AudioSpecValidator.is_lossless(source_format) \
            and AudioSpecValidator.is_lossless(normalized_target):
        acc.add_warning(
            "lossy_to_lossless_conversion",
            "Converting a lossy source to a lossless format does not restore quality",
            "target_format"
        )


def check_processing_requirements(
    acc: ValidationAccumulator,
    track: dict,
    target_format: Optional[str],
    target_sample_rate: Optional[int]
) -> None:
    sample_rate = track.get("sample_rate")
    if target_sample_rate and is_number(sample_rate) and sample_rate != target_sample_rate:
        acc.add_warning(
            "sample_rate_conversion_needed",
            f"Sample rate conversion needed: {sample_rate}Hz to {target_sample_rate}Hz",
            "sample_rate",
            details={"source": sample_rate, "target": target_sample_rate}
        )

    normalized_target = AudioSpecValidator.normalize_format(target_format)
    bitrate = None
    if normalized_target in AudioSpecValidator.COMPRESSED_FORMATS:
        bitrate = AudioSpecValidator.MP3_RECOMMENDED_BITRATE

    output_track = dict(track)
    if target_sample_rate:
        output_track["sample_rate"] = target_sample_rate

    estimate = estimate_file_size(output_track, bitrate)
    if estimate:
        acc.add_info(
            "estimated_output_size",
            f"Estimated output size is {estimate['mb']}MB",
            "file_size_bytes",
            details=estimate
        )


class TrackValidator:
    """Track creation, platform delivery and audio processing validation."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    def validate_for_creation(
        self,
        track: dict,
        strict: bool = False,
        validate_audio_file: bool = True,
        validate_metadata: bool = True
    ) -> ValidationResult:
        """Validate a track before it is created.

        Stages: structure, metadata, audio file, technical and content.
        ``strict`` adds the mastering quality standards.
        """
        acc = ValidationAccumulator()

        with fail_closed(acc, "track.validate_for_creation"):
            check_track_structure(acc, track)

            if validate_metadata:
                check_track_basic_info(acc, track)
                acc.extend(ISRCValidator.validate(track.get("isrc")))

            if validate_audio_file:
                check_audio_file(acc, track)

            check_technical_requirements(acc, track)
            check_content_requirements(acc, track, self.settings.detect_lyrics_language)
            if strict and validate_metadata:
                check_track_quality_standards(acc, track)

        return acc.build_result()

    def validate_for_platform_distribution(
        self,
        track: dict,
        platforms: Optional[Iterable[Any]] = None,
        validate_compliance: bool = True,
        validate_quality: bool = True
    ) -> ValidationResult:
        """Per-platform rules plus the quality bars of high-quality and streaming services."""
        acc = ValidationAccumulator()

        with fail_closed(acc, "track.validate_for_platform_distribution"):
            channels = resolve_channels(platforms)
            logger.debug(f"Checking track against platforms: {[channel.value for channel in channels]}")

            if validate_compliance:
                apply_channel_rules(acc, TRACK_PLATFORM_RULES, track, channels)

            if validate_quality:
                if any(channel in HIGH_QUALITY_CHANNELS for channel in channels):
                    check_high_quality_requirements(acc, track)
                if any(channel in STREAMING_CHANNELS for channel in channels):
                    check_streaming_quality_requirements(acc, track)

        return acc.build_result()

    def validate_for_audio_processing(
        self,
        track: dict,
        target_format: Optional[str] = None,
        target_sample_rate: Optional[int] = None,
        validate_format: bool = True,
        validate_quality: bool = True
    ) -> ValidationResult:
        acc = ValidationAccumulator()

        with fail_closed(acc, "track.validate_for_audio_processing"):
            if not has_audio_file(track):
                acc.add_error("missing_audio_file", "Audio file is required for processing", "audio_file")

            if validate_format:
                check_processing_format(acc, track, target_format)
            if validate_quality:
                check_audio_specifications(acc, track)
                check_audio_levels(acc, track)

            check_processing_requirements(acc, track, target_format, target_sample_rate)

        return acc.build_result()

    def summarize_audio(self, track: dict) -> Dict[str, Any]:
        """Audio analysis summary for a track record."""
        return {
            "format": AudioSpecValidator.normalize_format(track.get("audio_file_format")) or "unknown",
            "quality_level": assess_audio_quality(track),
            "streaming_ready": assess_streaming_readiness(track),
            "hd_ready": assess_hd_readiness(track),
            "estimated_file_size": estimate_file_size(track),
        }
