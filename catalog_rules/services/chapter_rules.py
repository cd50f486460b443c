"""Chapter rules: structure, content formatting and publishing readiness."""

import logging
import re
from enum import Enum
from typing import Any, Optional

from catalog_rules.core.validation import ValidationAccumulator, ValidationResult, fail_closed
from catalog_rules.services.lifecycle import parse_status
from catalog_rules.utils.validators import is_integer, is_number, is_uuid

logger = logging.getLogger(__name__)

TITLE_MAX_LENGTH = 200
MAX_ORDER_INDEX = 9999
CONTENT_MIN_LENGTH = 100
CONTENT_MAX_LENGTH = 500000
MAX_UNBROKEN_SENTENCES = 10
EXCERPT_MIN_LENGTH = 50
EXCERPT_MAX_LENGTH = 500
MAX_WORD_COUNT = 50000
MAX_READING_MINUTES = 300
MAX_KEYWORDS = 15
KEYWORD_MIN_LENGTH = 2
KEYWORD_MAX_LENGTH = 30

MIN_CHAPTER_WORDS = 100
MAX_CHAPTER_WORDS = 20000
SINGLE_PARAGRAPH_LIMIT = 2000

REQUIRED_FIELDS = ("title", "publication_id")
STRICT_REQUIRED_FIELDS = REQUIRED_FIELDS + ("content", "order_index")

TITLE_INVALID_CHARS = re.compile(r"[<>{}\[\]\\]")
NUMBERED_TITLE = re.compile(r"^(chapter|ch\.?)\s*\d+", re.IGNORECASE)
SENTENCE_BREAK = re.compile(r"[.!?]+")
PARAGRAPH_BREAK = re.compile(r"\n\s*\n")
OPENING_TAG = re.compile(r"<[^/][^>]*>")
CLOSING_TAG = re.compile(r"</[^>]*>")
DANGEROUS_TAGS = ("script", "iframe", "object", "embed", "link")


class ChapterStatus(str, Enum):
    DRAFT = "draft"
    REVIEW = "review"
    APPROVED = "approved"
    PUBLISHED = "published"
    ARCHIVED = "archived"


def check_required_fields(acc: ValidationAccumulator, chapter: dict, strict: bool = False) -> None:
    for field in STRICT_REQUIRED_FIELDS if strict else REQUIRED_FIELDS:
        if chapter.get(field) is None:
            acc.add_error("required_field", f"{field} is required", field)


def check_title(acc: ValidationAccumulator, title: Any) -> None:
    if not title or not isinstance(title, str):
        acc.add_error("invalid_title", "Title must be a non-empty string", "title")
        return

    title = title.strip()
    if not title:
        acc.add_error("title_too_short", "Title cannot be empty", "title")
    if len(title) > TITLE_MAX_LENGTH:
        acc.add_error("title_too_long", f"Title cannot exceed {TITLE_MAX_LENGTH} characters", "title")

    if TITLE_INVALID_CHARS.search(title):
        acc.add_error("title_invalid_chars", "Title contains invalid characters: < > { } [ ] \\", "title")

    if NUMBERED_TITLE.match(title):
        acc.add_warning(
            "numbered_chapter_title",
            "Consider using a descriptive title instead of just a chapter number",
            "title"
        )


def check_publication_id(acc: ValidationAccumulator, publication_id: Any) -> None:
    if not is_uuid(publication_id):
        acc.add_error(
            "invalid_publication_id_format",
            "Publication ID must be a valid UUID",
            "publication_id"
        )


def check_order_index(acc: ValidationAccumulator, order_index: Any) -> None:
    if order_index is None:
        acc.add_warning("missing_order_index", "Order index helps organize chapters", "order_index")
        return

    if not is_integer(order_index) or order_index < 0:
        acc.add_error("invalid_order_index", "Order index must be a non-negative integer", "order_index")
    elif order_index > MAX_ORDER_INDEX:
        acc.add_warning("high_order_index", f"Order index above {MAX_ORDER_INDEX} is unusual", "order_index")


def check_html(acc: ValidationAccumulator, content: str) -> None:
    if len(OPENING_TAG.findall(content)) != len(CLOSING_TAG.findall(content)):
        acc.add_error("unmatched_html_tags", "HTML tags are not properly closed", "content")

    for tag in DANGEROUS_TAGS:
        if re.search(rf"<{tag}[^>]*>", content, re.IGNORECASE):
            acc.add_error(
                "dangerous_html_tag",
                f"Content contains potentially dangerous HTML tag: {tag}",
                "content",
                details={"tag": tag}
            )


def check_content_formatting(acc: ValidationAccumulator, content: str) -> None:
    if "  " in content:
        acc.add_warning("excessive_whitespace", "Content contains multiple consecutive spaces", "content")

    sentences = [s for s in SENTENCE_BREAK.split(content) if s.strip()]
    if len(sentences) > MAX_UNBROKEN_SENTENCES and "\n\n" not in content:
        acc.add_warning(
            "missing_paragraph_breaks",
            "Long content without paragraph breaks may be hard to read",
            "content"
        )

    if "<" in content and ">" in content:
        check_html(acc, content)


def check_content(acc: ValidationAccumulator, content: Any) -> None:
    if content is None:
        acc.add_warning("missing_content", "Chapter content is recommended", "content")
        return

    if not isinstance(content, str):
        acc.add_error("invalid_content_type", "Content must be a string", "content")
        return

    stripped = content.strip()
    if not stripped:
        acc.add_warning("empty_content", "Chapter content is empty", "content")
        return

    if len(stripped) < CONTENT_MIN_LENGTH:
        acc.add_warning(
            "short_content",
            f"Chapter content is very short (less than {CONTENT_MIN_LENGTH} characters)",
            "content"
        )
    if len(content) > CONTENT_MAX_LENGTH:
        acc.add_error(
            "content_too_long",
            f"Chapter content exceeds maximum length ({CONTENT_MAX_LENGTH:,} characters)",
            "content"
        )

    check_content_formatting(acc, content)


def check_excerpt(acc: ValidationAccumulator, excerpt: Any) -> None:
    if not excerpt:
        return

    if not isinstance(excerpt, str):
        acc.add_error("invalid_excerpt_type", "Excerpt must be a string", "excerpt")
        return

    excerpt = excerpt.strip()
    if len(excerpt) > EXCERPT_MAX_LENGTH:
        acc.add_error("excerpt_too_long", f"Excerpt cannot exceed {EXCERPT_MAX_LENGTH} characters", "excerpt")
    elif 0 < len(excerpt) < EXCERPT_MIN_LENGTH:
        acc.add_warning(
            "excerpt_too_short",
            f"Excerpt should be at least {EXCERPT_MIN_LENGTH} characters",
            "excerpt"
        )


def check_word_count(acc: ValidationAccumulator, word_count: Any) -> None:
    if word_count is None:
        return

    if not is_integer(word_count) or word_count < 0:
        acc.add_error("invalid_word_count", "Word count must be a non-negative integer", "word_count")
        return

    if word_count == 0:
        acc.add_warning("zero_word_count", "Chapter has no words", "word_count")
    elif word_count > MAX_WORD_COUNT:
        acc.add_warning(
            "very_long_chapter",
            f"Chapter exceeds {MAX_WORD_COUNT:,} words - consider splitting",
            "word_count"
        )


def check_reading_time(acc: ValidationAccumulator, reading_time: Any) -> None:
    if reading_time is None:
        return

    if not is_number(reading_time) or reading_time < 0:
        acc.add_error("invalid_reading_time", "Reading time must be a non-negative number", "reading_time")
    elif reading_time > MAX_READING_MINUTES:
        acc.add_warning(
            "very_long_reading_time",
            f"Reading time exceeds {MAX_READING_MINUTES} minutes",
            "reading_time"
        )


def check_keywords(acc: ValidationAccumulator, keywords: Any) -> None:
    if keywords is None:
        return

    if not isinstance(keywords, list):
        acc.add_error("invalid_keywords_format", "Keywords must be an array", "keywords")
        return

    if len(keywords) > MAX_KEYWORDS:
        acc.add_warning("too_many_keywords", f"More than {MAX_KEYWORDS} keywords may dilute relevance", "keywords")

    for index, keyword in enumerate(keywords):
        if not isinstance(keyword, str):
            acc.add_error("invalid_keyword_format", f"Keyword at index {index} must be a string", "keywords")
            continue

        length = len(keyword.strip())
        if length < KEYWORD_MIN_LENGTH:
            acc.add_error(
                "keyword_too_short",
                f"Keyword at index {index} must be at least {KEYWORD_MIN_LENGTH} characters",
                "keywords"
            )
        elif length > KEYWORD_MAX_LENGTH:
            acc.add_error(
                "keyword_too_long",
                f"Keyword at index {index} cannot exceed {KEYWORD_MAX_LENGTH} characters",
                "keywords"
            )

    normalized = [k.strip().lower() for k in keywords if isinstance(k, str)]
    if len(set(normalized)) != len(normalized):
        acc.add_warning("duplicate_keywords", "Duplicate keywords found", "keywords")


def check_status(acc: ValidationAccumulator, status: Any) -> None:
    if parse_status(ChapterStatus, status) is None:
        acc.add_error(
            "invalid_status",
            f"Status must be one of: {', '.join(s.value for s in ChapterStatus)}",
            "status"
        )


def check_content_quality(acc: ValidationAccumulator, content: str) -> None:
    word_count = len(content.split())
    if word_count < MIN_CHAPTER_WORDS:
        acc.add_warning(
            "very_short_chapter",
            f"Chapter is very short (less than {MIN_CHAPTER_WORDS} words)",
            "content"
        )
    if word_count > MAX_CHAPTER_WORDS:
        acc.add_warning(
            "very_long_chapter",
            f"Chapter is very long (over {MAX_CHAPTER_WORDS:,} words) - consider splitting",
            "content"
        )

    if content.count('"') % 2:
        acc.add_warning("unmatched_quotes", "Unmatched quotation marks detected", "content")

    paragraphs = [p for p in PARAGRAPH_BREAK.split(content) if p.strip()]
    if len(paragraphs) == 1 and len(content) > SINGLE_PARAGRAPH_LIMIT:
        acc.add_warning(
            "single_paragraph",
            "Long content should be broken into multiple paragraphs",
            "content"
        )


# Field checks run by validate_update, in order, for each supplied field
FIELD_CHECKS = (
    ("title", check_title),
    ("content", check_content),
    ("order_index", check_order_index),
    ("excerpt", check_excerpt),
    ("word_count", check_word_count),
    ("reading_time", check_reading_time),
    ("keywords", check_keywords),
    ("status", check_status),
)


class ChapterValidator:
    """Chapter validation for creation, updates and publishing."""

    def validate_for_creation(self, chapter: dict, strict: bool = False) -> ValidationResult:
        acc = ValidationAccumulator()

        with fail_closed(acc, "chapter.validate_for_creation"):
            check_required_fields(acc, chapter, strict)
            if chapter.get("title"):
                check_title(acc, chapter["title"])
            if chapter.get("publication_id"):
                check_publication_id(acc, chapter["publication_id"])

            check_content(acc, chapter.get("content"))
            check_order_index(acc, chapter.get("order_index"))
            for field, check in FIELD_CHECKS[3:]:
                if field in chapter:
                    check(acc, chapter[field])

        return acc.build_result()

    def validate_update(self, update_data: dict, chapter_id: Optional[str] = None) -> ValidationResult:
        """Validate only the fields present in ``update_data``."""
        acc = ValidationAccumulator()

        with fail_closed(acc, "chapter.validate_update"):
            for field, check in FIELD_CHECKS:
                if field in update_data:
                    check(acc, update_data[field])

            if "status" in update_data:
                logger.debug(f"Validated status change to {update_data['status']} for chapter {chapter_id}")

        return acc.build_result()

    def validate_content_quality(self, chapter: dict) -> ValidationResult:
        """Readability checks over the chapter body.

        An empty body is an error here and stops the remaining checks.
        """
        acc = ValidationAccumulator()

        with fail_closed(acc, "chapter.validate_content_quality"):
            content = chapter.get("content")
            if not isinstance(content, str) or not content.strip():
                acc.add_error("empty_content", "Chapter content cannot be empty", "content")
            else:
                check_content_quality(acc, content)

        return acc.build_result()

    def validate_for_publishing(self, chapter: dict) -> ValidationResult:
        acc = ValidationAccumulator()

        with fail_closed(acc, "chapter.validate_for_publishing"):
            check_required_fields(acc, chapter, strict=True)
            if chapter.get("publication_id"):
                check_publication_id(acc, chapter["publication_id"])

            content = chapter.get("content")
            if isinstance(content, str) and content.strip():
                check_content_quality(acc, content)
                check_content_formatting(acc, content)
            elif content is not None:
                acc.add_error("empty_content", "Chapter content cannot be empty", "content")

        return acc.build_result()
