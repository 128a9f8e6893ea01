# tests/conftest.py
from datetime import datetime, timezone

import pytest
import pytest_asyncio
from mongomock_motor import AsyncMongoMockClient

BADGE_ID = "badge_course_101"
SITE_BADGE_ID = "badge_site_001"
COURSE_CONTEXT = "ctx_course_101"
ISSUER_ID = "u_teacher"
ISSUER_ROLE = "editingteacher"
OTHER_ROLE = "manager"


def pytest_configure(config):
    """Register custom markers"""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests")
    config.addinivalue_line("markers", "slow: Slow tests")
    config.addinivalue_line("markers", "mocked: Tests with mocking")


class RecordingEventSink:
    """Collects emitted events instead of publishing them"""

    def __init__(self):
        self.events = []

    def emit(self, event):
        self.events.append(event)


def make_user(user_id, firstname, lastname, **extra):
    user = {
        "_id": user_id,
        "username": user_id,
        "firstname": firstname,
        "lastname": lastname,
        "email": f"{user_id}@example.com",
        "deleted": False
    }
    user.update(extra)
    return user


async def enrol(db, user_ids, context_id=COURSE_CONTEXT, capabilities=("moodle/badges:earnbadge",)):
    if user_ids:
        await db.user_enrolments.insert_many([
            {"user_id": user_id, "context_id": context_id, "capabilities": list(capabilities), "active": True}
            for user_id in user_ids
        ])


@pytest.fixture
def event_sink():
    return RecordingEventSink()


@pytest_asyncio.fixture
async def db():
    client = AsyncMongoMockClient()
    database = client["badges_test"]
    await database.badges.insert_many([
        {"_id": BADGE_ID, "name": "Course Finisher", "course_id": 101, "context_id": COURSE_CONTEXT},
        {"_id": SITE_BADGE_ID, "name": "Site Helper", "course_id": None}
    ])
    yield database


@pytest_asyncio.fixture
async def classroom(db):
    """A course with five learners able to earn badges, one without the capability and one deleted"""
    await db.users.insert_many([
        make_user("u_alice", "Alice", "Anders"),
        make_user("u_bob", "Bob", "Baker"),
        make_user("u_carol", "Carol", "Baker"),
        make_user("u_dave", "Dave", "Dunn"),
        make_user("u_erin", "Erin", "Evans"),
        make_user("u_frank", "Frank", "Fisher"),
        make_user("u_gone", "Gina", "Gone", deleted=True),
        make_user(ISSUER_ID, "Tess", "Teacher")
    ])
    await enrol(db, ["u_alice", "u_bob", "u_carol", "u_dave", "u_erin", "u_gone"])
    await enrol(db, ["u_frank"], capabilities=("moodle/course:view",))
    await enrol(db, [ISSUER_ID], capabilities=("moodle/badges:awardbadge",))
    await db.groups_members.insert_many([
        {"group_id": "g_red", "user_id": "u_alice"},
        {"group_id": "g_red", "user_id": "u_dave"},
        {"group_id": "g_blue", "user_id": "u_bob"}
    ])
    return db


def issued_badge(badge_id, user_id, visible=True, day=1):
    return {
        "badge_id": badge_id,
        "user_id": user_id,
        "unique_hash": f"{badge_id}-{user_id}",
        "date_issued": datetime(2024, 5, day, tzinfo=timezone.utc),
        "date_expire": None,
        "visible": visible
    }
