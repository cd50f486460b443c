"""Pytest configuration and fixtures."""

from datetime import datetime, timedelta

import pytest

from catalog_rules.core.settings import Settings
from catalog_rules.services.collaboration import CollaborationService
from catalog_rules.services.events import EventPublisher
from catalog_rules.services.versioning import VersionService

# A Wednesday
NOW = datetime(2025, 1, 8, 12, 0, 0)


class FakeClock:
    """Controllable clock for services that stamp records."""

    def __init__(self, start: datetime = NOW):
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> datetime:
        self.current += timedelta(**kwargs)
        return self.current


@pytest.fixture
def now():
    """Fixed reference time."""
    return NOW


@pytest.fixture
def settings():
    """Test settings with language detection turned off."""
    return Settings(environment="test", detect_lyrics_language=False)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def event_publisher():
    """In-memory event publisher."""
    return EventPublisher()


@pytest.fixture
def version_service(settings, event_publisher, clock):
    """Version service wired to the test clock and publisher."""
    return VersionService(settings=settings, event_publisher=event_publisher, clock=clock)


@pytest.fixture
def collaboration_service(event_publisher, clock):
    """Collaboration service wired to the test clock and publisher."""
    return CollaborationService(event_publisher=event_publisher, clock=clock)


@pytest.fixture
def publication_id():
    """Test publication ID."""
    return "550e8400-e29b-41d4-a716-446655440010"


@pytest.fixture
def author_id():
    """Test author ID."""
    return "550e8400-e29b-41d4-a716-446655440098"


@pytest.fixture
def collaborator_id():
    """Test collaborator ID."""
    return "550e8400-e29b-41d4-a716-446655440097"


@pytest.fixture
def sample_track():
    """Sample track ready for release."""
    return {
        "title": "Midnight Drive",
        "track_number": 1,
        "duration_ms": 210000,
        "audio_file_url": "https://cdn.example.com/audio/midnight-drive.wav",
        "audio_file_format": "wav",
        "sample_rate": 44100,
        "bit_depth": 24,
        "audio_channels": 2,
        "isrc": "USRC17607839",
        "explicit_content": False,
        "genre": "Pop",
    }


@pytest.fixture
def sample_release(sample_track):
    """Sample single released on a Friday four weeks out."""
    return {
        "title": "Midnight Drive",
        "artist_id": "550e8400-e29b-41d4-a716-446655440001",
        "type": "single",
        "format": "digital",
        "release_date": "2025-02-07",
        "genre": "Pop",
        "language": "en",
        "upc": "036000291452",
        "copyright_notice": "2025 Night Owl Records",
        "phonographic_copyright": "2025 Night Owl Records",
        "artwork_url": "https://cdn.example.com/art/midnight-drive.jpg",
        "explicit_content": False,
        "tracks": [sample_track],
    }


@pytest.fixture
def sample_split():
    """Master recording split between artist and label."""
    return {
        "release_id": "550e8400-e29b-41d4-a716-446655440020",
        "split_type": "master_recording",
        "status": "active",
        "splits": [
            {"participant_id": "artist-1", "role": "artist", "percentage": 60},
            {"participant_id": "label-1", "role": "label", "percentage": 40},
        ],
    }


@pytest.fixture
def sample_publication():
    """Sample ebook publication."""
    return {
        "title": "River of Quiet Stars",
        "publication_type": "ebook",
        "language": "en",
        "description": "A lyrical novel about two sisters who map the night sky above a drowned valley.",
        "genre": "literary-fiction",
        "target_audience": "adult",
        "pricing": {"USD": {"retail_price": 9.99, "wholesale_price": 5.99}},
        "territories": ["US", "GB"],
        "keywords": ["astronomy", "sisters", "family saga"],
        "bisac_categories": ["FIC019000"],
        "isbn_13": "9780306406157",
        "chapters": [{"title": "One"}],
        "word_count": 85000,
    }


CHAPTER_SENTENCE = "The sisters walked along the dark river and counted the stars above the drowned valley."


@pytest.fixture
def sample_chapter(publication_id):
    """Chapter with three short paragraphs."""
    paragraph = " ".join([CHAPTER_SENTENCE] * 4)
    return {
        "title": "The Drowned Valley",
        "publication_id": publication_id,
        "order_index": 1,
        "content": "\n\n".join([paragraph] * 3),
        "excerpt": "Two sisters walk the river at night and count the stars above the drowned valley.",
        "word_count": 180,
        "reading_time": 1,
        "keywords": ["river", "sisters"],
        "status": "draft",
    }


@pytest.fixture
def sample_rights(publication_id):
    """Exclusive US ebook rights starting next month."""
    return {
        "publication_id": publication_id,
        "right_type": "ebook",
        "territory": "US",
        "language": "en",
        "license_type": "exclusive",
        "start_date": "2025-02-01",
        "end_date": "2030-02-01",
        "exclusive": True,
        "sublicensing_allowed": False,
        "royalty_rate": 0.25,
        "advance_amount": 5000,
        "currency": "USD",
        "status": "pending",
    }


@pytest.fixture
def sample_sale(publication_id):
    """Ebook sale reported by a store last week."""
    return {
        "publication_id": publication_id,
        "store": "Amazon",
        "sale_date": "2025-01-02",
        "quantity": 3,
        "unit_price": 9.99,
        "currency": "USD",
        "gross_revenue": 29.97,
        "net_revenue": 20.98,
        "royalty_amount": 14.69,
        "unit": "units",
        "sale_type": "sale",
        "status": "confirmed",
    }


@pytest.fixture
def sample_payout():
    """December payout batch for two payees."""
    return {
        "period_start": "2024-12-01",
        "period_end": "2024-12-31",
        "currency": "USD",
        "status": "calculated",
        "payouts": [
            {
                "payee_id": "artist-1",
                "gross_amount": 1200.0,
                "fees": 60.0,
                "net_amount": 1140.0,
                "currency": "USD",
                "payment_method": "bank_transfer",
                "bank_account_info": {"iban": "GB33BUKB20201555555555"},
            },
            {
                "payee_id": "writer-1",
                "gross_amount": 800.0,
                "fees": 40.0,
                "net_amount": 760.0,
                "currency": "USD",
                "payment_method": "paypal",
                "paypal_email": "writer@example.com",
            },
        ],
        "total_gross_amount": 2000.0,
        "total_deductions": 0,
        "total_fees": 100.0,
        "total_net_amount": 1900.0,
        "created_by": "ops-1",
        "approved_by": "finance-1",
        "calculation_method": "pro_rata",
        "calculation_notes": "December statement",
        "calculation_report": "report-2024-12",
        "approval_record": "approval-2024-12",
    }
