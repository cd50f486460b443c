"""Tests for track validation."""

import pytest

from catalog_rules.core.validation import Severity
from catalog_rules.services.track_rules import TrackValidator


@pytest.fixture
def validator(settings):
    return TrackValidator(settings=settings)


class TestCreation:

    def test_valid_track(self, validator, sample_track):
        result = validator.validate_for_creation(sample_track)

        assert result.is_valid
        assert result.has_code("optimal_radio_length", Severity.INFO)
        assert result.has_code("missing_producer_credit", Severity.WARNING)
        assert result.has_code("missing_file_size", Severity.WARNING)

    def test_missing_required_fields(self, validator):
        result = validator.validate_for_creation({})

        fields = [i.field for i in result.errors if i.code == "missing_required_field"]
        assert fields == ["title", "duration_ms", "track_number"]
        assert result.has_code("missing_audio_file")
        assert result.has_code("missing_duration")

    def test_invalid_types(self, validator, sample_track):
        sample_track.update({"duration_ms": "long", "tags": "rock", "explicit_content": "no", "tempo_bpm": "fast"})
        result = validator.validate_for_creation(sample_track)

        assert result.has_code("invalid_data_type")
        assert result.has_code("invalid_numeric_value")

    def test_minimum_duration_boundary(self, validator, sample_track):
        """15 seconds is the shortest acceptable track."""
        sample_track["duration_ms"] = 14999
        assert validator.validate_for_creation(sample_track).has_code("track_too_short", Severity.ERROR)

        sample_track["duration_ms"] = 15000
        result = validator.validate_for_creation(sample_track)
        assert not result.has_code("track_too_short")
        assert result.has_code("track_very_short", Severity.WARNING)

    def test_long_tracks(self, validator, sample_track):
        sample_track["duration_ms"] = 21 * 60 * 1000
        result = validator.validate_for_creation(sample_track)

        assert result.has_code("track_very_long")
        assert result.has_code("track_extremely_long")

    def test_low_mp3_bitrate(self, validator, sample_track):
        sample_track.update({"audio_file_format": "mp3", "audio_bitrate": 96})
        result = validator.validate_for_creation(sample_track)

        assert result.has_code("mp3_bitrate_too_low", Severity.ERROR)
        assert result.has_code("compressed_audio_format", Severity.WARNING)
        assert result.has_code("recommend_lossless", Severity.WARNING)

    def test_unsupported_format(self, validator, sample_track):
        sample_track["audio_file_format"] = "ogg"
        assert validator.validate_for_creation(sample_track).has_code("unsupported_audio_format", Severity.ERROR)

    def test_file_too_large(self, validator, sample_track):
        sample_track["file_size_bytes"] = 600 * 1024 * 1024
        assert validator.validate_for_creation(sample_track).has_code("file_too_large", Severity.ERROR)

    def test_audio_levels(self, validator, sample_track):
        sample_track.update({"peak_amplitude": 0.5, "loudness_lufs": -30, "dynamic_range": 3})
        result = validator.validate_for_creation(sample_track)

        assert result.has_code("peak_clipping", Severity.ERROR)
        assert result.has_code("loudness_too_low")
        assert result.has_code("low_dynamic_range")

    def test_insufficient_bit_depth(self, validator, sample_track):
        sample_track["bit_depth"] = 8
        assert validator.validate_for_creation(sample_track).has_code("insufficient_bit_depth", Severity.ERROR)

    def test_tempo_for_genre(self, validator, sample_track):
        sample_track.update({"genre": "Hip-Hop", "tempo_bpm": 200})
        assert validator.validate_for_creation(sample_track).has_code("tempo_unusual_for_genre")

    def test_preview_beyond_end(self, validator, sample_track):
        sample_track["preview_start_time"] = 300000
        assert validator.validate_for_creation(sample_track).has_code("preview_start_beyond_end", Severity.ERROR)

    def test_multiple_content_types(self, validator, sample_track):
        sample_track.update({"remix": True, "live_recording": True})
        assert validator.validate_for_creation(sample_track).has_code("multiple_content_types")

    def test_strict_quality_standards(self, validator, sample_track):
        sample_track["peak_amplitude"] = -0.05
        assert not validator.validate_for_creation(sample_track).has_code("audio_clipping_risk")
        assert validator.validate_for_creation(sample_track, strict=True).has_code("audio_clipping_risk")

    def test_strict_mode_reports_each_level_code_once(self, validator, sample_track):
        sample_track.update({"loudness_lufs": -9, "dynamic_range": 3})
        codes = validator.validate_for_creation(sample_track, strict=True).codes()

        assert codes.count("loudness_too_high") == 1
        assert codes.count("low_dynamic_range") == 1

    def test_strict_dynamic_range_standard(self, validator, sample_track):
        """The strict floor is higher than the heavy-compression warning."""
        sample_track["dynamic_range"] = 5

        assert not validator.validate_for_creation(sample_track).has_code("low_dynamic_range")
        assert validator.validate_for_creation(sample_track, strict=True).has_code("low_dynamic_range")


class TestPlatformDistribution:

    def test_spotify_duration_boundary(self, validator, sample_track):
        sample_track["duration_ms"] = 29999
        assert validator.validate_for_platform_distribution(sample_track, ["spotify"]).has_code(
            "spotify_duration_too_short"
        )

        sample_track["duration_ms"] = 30000
        assert validator.validate_for_platform_distribution(sample_track, ["spotify"]).is_valid

    def test_high_quality_platforms(self, validator, sample_track):
        result = validator.validate_for_platform_distribution(sample_track, ["tidal"])

        assert result.has_code("hq_sample_rate_low")
        assert not result.has_code("hq_bit_depth_low")

    def test_streaming_loudness(self, validator, sample_track):
        sample_track["loudness_lufs"] = -9
        result = validator.validate_for_platform_distribution(sample_track, ["apple"])

        assert result.has_code("streaming_loudness_high")

    def test_master_quality_info(self, validator, sample_track):
        sample_track.update({"sample_rate": 96000, "bit_depth": 24})
        result = validator.validate_for_platform_distribution(sample_track, ["apple_music", "tidal"])

        assert result.has_code("mastered_for_itunes_eligible", Severity.INFO)
        assert result.has_code("tidal_master_quality", Severity.INFO)

    def test_no_platforms(self, validator, sample_track):
        assert validator.validate_for_platform_distribution(sample_track).codes() == []


class TestAudioProcessing:

    def test_lossy_to_lossless(self, validator, sample_track):
        sample_track["audio_file_format"] = "mp3"
        result = validator.validate_for_audio_processing(sample_track, target_format="flac")

        assert result.has_code("lossy_to_lossless_conversion", Severity.WARNING)

    def test_unsupported_target(self, validator, sample_track):
        result = validator.validate_for_audio_processing(sample_track, target_format="ogg")
        assert result.has_code("unsupported_audio_format", Severity.ERROR)

    def test_missing_audio_file(self, validator, sample_track):
        del sample_track["audio_file_url"]
        assert validator.validate_for_audio_processing(sample_track).has_code("missing_audio_file")

    def test_sample_rate_conversion(self, validator, sample_track):
        result = validator.validate_for_audio_processing(sample_track, target_format="wav", target_sample_rate=48000)

        assert result.has_code("sample_rate_conversion_needed")
        assert result.has_code("estimated_output_size", Severity.INFO)


def test_audio_summary(validator, sample_track):
    summary = validator.summarize_audio(sample_track)

    assert summary["format"] == "wav"
    assert summary["quality_level"] == "cd"
    assert summary["streaming_ready"] == {"ready": True, "issues": []}
    assert summary["hd_ready"]["ready"] is False
    assert summary["estimated_file_size"]["bytes"] == 55566000


def test_hi_res_summary(validator, sample_track):
    sample_track.update({"sample_rate": 96000, "bit_depth": 24, "audio_file_format": "flac"})
    summary = validator.summarize_audio(sample_track)

    assert summary["quality_level"] == "hi_res"
    assert summary["hd_ready"] == {"ready": True, "missing_requirements": []}
