"""Tests for chapter rules."""

import pytest

from catalog_rules.core.validation import Severity
from catalog_rules.services.chapter_rules import ChapterValidator


@pytest.fixture
def validator():
    return ChapterValidator()


class TestCreation:

    def test_complete_chapter(self, validator, sample_chapter):
        result = validator.validate_for_creation(sample_chapter)

        assert result.is_valid
        assert result.codes() == []

    def test_required_fields(self, validator):
        result = validator.validate_for_creation({})

        assert [i.field for i in result.errors] == ["title", "publication_id"]
        assert result.codes(Severity.WARNING) == ["missing_content", "missing_order_index"]

    def test_strict_required_fields(self, validator, sample_chapter):
        del sample_chapter["content"]
        del sample_chapter["order_index"]

        assert validator.validate_for_creation(sample_chapter).is_valid
        strict = validator.validate_for_creation(sample_chapter, strict=True)
        assert [i.field for i in strict.errors] == ["content", "order_index"]

    @pytest.mark.parametrize("title,code,severity", [
        ("Chapter 3", "numbered_chapter_title", Severity.WARNING),
        ("ch. 12 The Return", "numbered_chapter_title", Severity.WARNING),
        ("Into the {Valley}", "title_invalid_chars", Severity.ERROR),
        ("x" * 201, "title_too_long", Severity.ERROR),
        (42, "invalid_title", Severity.ERROR),
    ])
    def test_title_rules(self, validator, sample_chapter, title, code, severity):
        sample_chapter["title"] = title
        assert validator.validate_for_creation(sample_chapter).has_code(code, severity)

    def test_publication_id_must_be_uuid(self, validator, sample_chapter):
        sample_chapter["publication_id"] = "pub-1"
        result = validator.validate_for_creation(sample_chapter)

        assert result.codes() == ["invalid_publication_id_format"]

    @pytest.mark.parametrize("order_index,code", [
        (-1, "invalid_order_index"),
        ("1", "invalid_order_index"),
        (1.5, "invalid_order_index"),
        (10000, "high_order_index"),
    ])
    def test_order_index(self, validator, sample_chapter, order_index, code):
        sample_chapter["order_index"] = order_index
        assert validator.validate_for_creation(sample_chapter).codes() == [code]

    @pytest.mark.parametrize("content,code", [
        ("Too short.", "short_content"),
        ("   ", "empty_content"),
        (12, "invalid_content_type"),
        ("x" * 500001, "content_too_long"),
    ])
    def test_content_rules(self, validator, sample_chapter, content, code):
        sample_chapter["content"] = content
        assert validator.validate_for_creation(sample_chapter).has_code(code)

    def test_content_formatting(self, validator, sample_chapter):
        sample_chapter["content"] = " ".join(["One more night by the river."] * 11) + "  The end."
        result = validator.validate_for_creation(sample_chapter)

        assert result.has_code("excessive_whitespace", Severity.WARNING)
        assert result.has_code("missing_paragraph_breaks", Severity.WARNING)

    def test_html_checks(self, validator, sample_chapter):
        sample_chapter["content"] += "\n\n<p>Night <b>falls</p>"
        assert validator.validate_for_creation(sample_chapter).codes() == ["unmatched_html_tags"]

        sample_chapter["content"] += "</b><SCRIPT src='x.js'></SCRIPT>"
        result = validator.validate_for_creation(sample_chapter)
        assert result.codes() == ["dangerous_html_tag"]
        assert result.errors[0].details == {"tag": "script"}

    @pytest.mark.parametrize("excerpt,code", [
        ("Too short", "excerpt_too_short"),
        ("x" * 501, "excerpt_too_long"),
        (["not", "text"], "invalid_excerpt_type"),
    ])
    def test_excerpt_rules(self, validator, sample_chapter, excerpt, code):
        sample_chapter["excerpt"] = excerpt
        assert validator.validate_for_creation(sample_chapter).codes() == [code]

    @pytest.mark.parametrize("field,value,code", [
        ("word_count", -1, "invalid_word_count"),
        ("word_count", 0, "zero_word_count"),
        ("word_count", 50001, "very_long_chapter"),
        ("reading_time", "ten", "invalid_reading_time"),
        ("reading_time", 301, "very_long_reading_time"),
        ("status", "deleted", "invalid_status"),
    ])
    def test_counts_and_status(self, validator, sample_chapter, field, value, code):
        sample_chapter[field] = value
        assert validator.validate_for_creation(sample_chapter).codes() == [code]

    @pytest.mark.parametrize("keywords,code", [
        ("river", "invalid_keywords_format"),
        ([1], "invalid_keyword_format"),
        (["a"], "keyword_too_short"),
        (["x" * 31], "keyword_too_long"),
        (["River", "river "], "duplicate_keywords"),
        ([f"keyword-{i}" for i in range(16)], "too_many_keywords"),
    ])
    def test_keywords(self, validator, sample_chapter, keywords, code):
        sample_chapter["keywords"] = keywords
        assert validator.validate_for_creation(sample_chapter).codes() == [code]


class TestUpdate:

    def test_only_supplied_fields_are_checked(self, validator):
        assert validator.validate_update({"title": "A New Dawn"}).codes() == []
        assert validator.validate_update({"order_index": -1}, "chapter-1").codes() == ["invalid_order_index"]

    def test_status_change(self, validator):
        assert validator.validate_update({"status": "review"}, "chapter-1").is_valid
        assert not validator.validate_update({"status": "live"}, "chapter-1").is_valid


class TestContentQuality:

    def test_sample_chapter(self, validator, sample_chapter):
        assert validator.validate_content_quality(sample_chapter).codes() == []

    def test_empty_content_stops_checks(self, validator):
        result = validator.validate_content_quality({"content": "  "})
        assert result.codes() == ["empty_content"]
        assert not result.is_valid

    def test_short_chapter_with_stray_quote(self, validator):
        result = validator.validate_content_quality({"content": 'She said "wait and walked on.'})
        assert result.codes() == ["very_short_chapter", "unmatched_quotes"]

    def test_single_long_paragraph(self, validator):
        result = validator.validate_content_quality({"content": " ".join(["word"] * 500)})
        assert result.codes() == ["single_paragraph"]

    def test_very_long_chapter(self, validator):
        content = "\n\n".join([" ".join(["word"] * 400)] * 51)
        assert validator.validate_content_quality({"content": content}).codes() == ["very_long_chapter"]


class TestPublishing:

    def test_ready_chapter(self, validator, sample_chapter):
        assert validator.validate_for_publishing(sample_chapter).codes() == []

    def test_requires_content_and_order(self, validator, sample_chapter):
        del sample_chapter["content"]
        del sample_chapter["order_index"]
        result = validator.validate_for_publishing(sample_chapter)

        assert [i.field for i in result.errors] == ["content", "order_index"]

    def test_blank_content(self, validator, sample_chapter):
        sample_chapter["content"] = " "
        assert validator.validate_for_publishing(sample_chapter).codes() == ["empty_content"]
