"""Tests for validation results and the issue accumulator."""

from catalog_rules.core.validation import (
    Severity,
    ValidationAccumulator,
    ValidationIssue,
    fail_closed,
)
from catalog_rules.services.publication_rules import PublicationValidator


def test_empty_accumulator_builds_valid_result():
    """No issues means a valid result without warnings."""
    result = ValidationAccumulator().build_result()

    assert result.is_valid is True
    assert result.has_warnings is False
    assert result.summary.total_issues == 0


def test_info_entries_do_not_block():
    """Info entries travel with warnings and keep the result valid."""
    acc = ValidationAccumulator()
    acc.add_info("optimal_radio_length", "Track length is optimal", "duration_ms")
    result = acc.build_result()

    assert result.is_valid is True
    assert result.has_warnings is True
    assert result.warnings[0].severity == Severity.INFO
    assert result.has_code("optimal_radio_length", Severity.INFO)
    assert not result.has_code("optimal_radio_length", Severity.WARNING)


def test_summary_counts_and_external_contract():
    """The rendered result uses the external key names and severity strings."""
    acc = ValidationAccumulator()
    acc.add_error("missing_title", "Release title is required", "title")
    acc.add_warning("missing_genre", "Genre is recommended", "genre", details={"hint": "Pop"})
    result = acc.build_result()

    data = result.to_dict()
    assert data["isValid"] is False
    assert data["hasWarnings"] is True
    assert data["summary"] == {"total_issues": 2, "error_count": 1, "warning_count": 1}
    assert data["errors"][0] == {
        "code": "missing_title",
        "message": "Release title is required",
        "field": "title",
        "severity": "error",
    }
    assert data["warnings"][0]["details"] == {"hint": "Pop"}


def test_extend_routes_issues_by_severity():
    """Merged issues land in errors or warnings according to their severity."""
    acc = ValidationAccumulator()
    acc.extend([
        ValidationIssue("invalid_isrc_format", "bad isrc", "isrc"),
        ValidationIssue("mp3_bitrate_suboptimal", "low bitrate", "audio_bitrate", Severity.WARNING),
    ])

    assert [issue.code for issue in acc.errors] == ["invalid_isrc_format"]
    assert [issue.code for issue in acc.warnings] == ["mp3_bitrate_suboptimal"]


def test_issues_by_field_groups_general_issues():
    """Issues without a field are grouped under 'general'."""
    acc = ValidationAccumulator()
    acc.add_error("validation_error", "boom")
    acc.add_warning("missing_genre", "Genre is recommended", "genre")

    grouped = acc.build_result().issues_by_field()
    assert len(grouped["general"]["errors"]) == 1
    assert len(grouped["genre"]["warnings"]) == 1


def test_fail_closed_converts_exceptions():
    """An unexpected exception becomes a single validation_error entry."""
    acc = ValidationAccumulator()
    acc.add_warning("missing_genre", "Genre is recommended", "genre")

    with fail_closed(acc, "test.operation"):
        raise KeyError("tracks")

    result = acc.build_result()
    assert result.is_valid is False
    assert result.codes() == ["validation_error", "missing_genre"]
    assert result.errors[0].field == "general"
    assert result.errors[0].message.startswith("Validation failed:")


def test_validator_fails_closed_on_non_mapping_input():
    """Validators report malformed input instead of raising."""
    result = PublicationValidator().validate_for_creation(None)

    assert result.is_valid is False
    assert result.has_code("validation_error")
