"""pytest configuration for hostops tests."""

import os
import sys
from datetime import UTC, datetime
from pathlib import Path

import pytest

# Add src directory to path so tests can import hostops
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

# Set HOSTOPS_DB_PATH to :memory: for all tests to ensure test isolation
os.environ["HOSTOPS_DB_PATH"] = ":memory:"
os.environ.setdefault("HOSTOPS_LLM_MODE", "stub")

# Keep provider SDKs on their default endpoints so respx mocks match
for _var in ("ANTHROPIC_BASE_URL", "OPENAI_BASE_URL"):
    os.environ.pop(_var, None)

from hostops.commands.actions import ExecutionContext  # noqa: E402
from hostops.commands.extractor import ActionExtractor  # noqa: E402
from hostops.config import PipelineConfig  # noqa: E402
from hostops.db import DuckDBDocumentStore, init_db  # noqa: E402

# A Tuesday; tomorrow is Wednesday 2025-07-16 and the next Sunday is 2025-07-20.
FIXED_NOW = datetime(2025, 7, 15, 12, 0, 0, tzinfo=UTC)


@pytest.fixture
def now():
    return FIXED_NOW


@pytest.fixture
def today():
    return FIXED_NOW.date()


@pytest.fixture
def clock():
    """Clock frozen at FIXED_NOW."""
    return lambda: FIXED_NOW


@pytest.fixture
def db_conn():
    """In-memory DuckDB with migrations applied."""
    conn = init_db(":memory:")
    yield conn
    conn.close()


@pytest.fixture
def store(db_conn, clock):
    return DuckDBDocumentStore(db_conn, clock=clock)


@pytest.fixture
def config():
    return PipelineConfig()


@pytest.fixture
def ctx():
    return ExecutionContext(
        actor_id="admin-1",
        actor_name="Alex Admin",
        session_id="session-1",
        source="test",
        timestamp=FIXED_NOW,
    )


@pytest.fixture
def seeded_store(store):
    """Store with a small, realistic operational dataset."""
    store.create(
        "staff",
        {
            "name": "Maria Santos",
            "email": "maria@example.com",
            "role": "cleaner",
            "status": "active",
            "skills": ["cleaning", "laundry"],
            "completionRate": 98,
            "averageRating": 4.8,
            "punctualityScore": 95,
            "assignedProperties": ["prop-sunset"],
        },
        doc_id="staff-maria",
    )
    store.create(
        "staff",
        {
            "name": "John Smith",
            "email": "john@example.com",
            "role": "maintenance",
            "status": "active",
            "skills": ["maintenance", "plumbing"],
            "completionRate": 85,
            "averageRating": 4.0,
            "punctualityScore": 80,
            "assignedProperties": ["prop-paradise"],
        },
        doc_id="staff-john",
    )
    store.create(
        "staff",
        {"name": "Ivan Idle", "status": "inactive", "skills": ["cleaning"]},
        doc_id="staff-ivan",
    )

    jobs = {
        "job-001": {
            "title": "Turnover clean",
            "status": "pending",
            "propertyId": "prop-sunset",
            "propertyName": "Villa Sunset",
            "requiredSkills": ["cleaning"],
            "jobType": "cleaning",
            "scheduledDate": "2025-07-18",
        },
        "job-002": {
            "title": "Pool check",
            "status": "pending",
            "propertyId": "prop-paradise",
            "propertyName": "Villa Paradise",
            "requiredSkills": ["maintenance"],
            "jobType": "maintenance",
            "scheduledDate": "2025-07-18",
        },
        "job-099": {"title": "Deep clean", "status": "in_progress", "scheduledDate": "2025-07-15"},
        "job-done": {"title": "Linen swap", "status": "completed", "scheduledDate": "2025-07-10"},
        "job-locked": {"title": "Owner visit prep", "status": "pending", "locked": True},
    }
    for job_id, data in jobs.items():
        store.create("jobs", data, doc_id=job_id)

    bookings = {
        "bk-100": {
            "guestName": "Ana Lopez",
            "propertyName": "Villa Sunset",
            "status": "pending_approval",
            "checkInDate": "2025-07-20",
        },
        "bk-past": {
            "guestName": "Old Guest",
            "propertyName": "Villa Sunset",
            "status": "pending_approval",
            "checkInDate": "2025-07-01",
        },
        "bk-approved": {
            "guestName": "Done Deal",
            "propertyName": "Villa Paradise",
            "status": "approved",
            "checkInDate": "2025-08-01",
        },
    }
    for booking_id, data in bookings.items():
        store.create("bookings", data, doc_id=booking_id)

    return store


@pytest.fixture
def extractor():
    return ActionExtractor(today=lambda: FIXED_NOW.date())


@pytest.fixture
def action_for(extractor):
    """Build the single candidate action extracted from a command."""

    def _build(text: str):
        actions = extractor.extract(text)
        assert len(actions) == 1, f"expected one action from {text!r}, got {actions}"
        return actions[0]

    return _build
