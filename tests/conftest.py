"""
Shared fixtures: in-memory Motor database, the real Razorpay gateway with a
fake order API behind it, a recording mailer, and user/course factories.
"""

import time
import uuid
from datetime import datetime, timedelta
from types import SimpleNamespace

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from jose import jwt
from mongomock_motor import AsyncMongoMockClient

from skillcerts.config import Settings
from skillcerts.courses import database as store
from skillcerts.courses.app import create_course_indexes
from skillcerts.main import create_app
from skillcerts.payments.database import create_payment_indexes
from skillcerts.payments.gateway import RazorpayGateway, compute_signature

JWT_SECRET = "test-secret-key-that-is-at-least-32-characters"


class FakeOrderAPI:
    """Stands in for razorpay.Client().order"""

    def __init__(self):
        self.created = []
        self.delay = 0.0

    def create(self, data):
        if self.delay:
            time.sleep(self.delay)
        order = {
            "id": f"order_{uuid.uuid4().hex[:14]}",
            "entity": "order",
            "amount": data["amount"],
            "currency": data["currency"],
            "receipt": data["receipt"],
            "notes": data["notes"],
            "status": "created",
        }
        self.created.append(order)
        return order


class RecordingMailer:
    def __init__(self, succeed: bool = True):
        self.sent = []
        self.succeed = succeed

    async def send(self, to, subject, html):
        self.sent.append({"to": to, "subject": subject, "html": html})
        if not self.succeed:
            return {"success": False, "error": "mailbox unavailable"}
        return {"success": True, "data": {"id": f"email_{len(self.sent)}"}}


# ==================== APP ====================

@pytest.fixture
def settings():
    return Settings(
        mongo_db_name="skillcerts_test",
        jwt_secret_key=JWT_SECRET,
        razorpay_key_id="rzp_test_key",
        razorpay_key_secret="rzp_test_secret",
        gateway_timeout_seconds=0.5,
        frontend_url="http://frontend.test",
        log_level="WARNING",
    )


@pytest_asyncio.fixture
async def db():
    database = AsyncMongoMockClient()["skillcerts_test"]
    await create_course_indexes(database)
    await create_payment_indexes(database)
    yield database


@pytest.fixture
def razorpay_orders():
    return FakeOrderAPI()


@pytest.fixture
def gateway(settings, razorpay_orders):
    gw = RazorpayGateway.from_settings(settings)
    gw._client = SimpleNamespace(order=razorpay_orders)
    return gw


@pytest.fixture
def mailer():
    return RecordingMailer()


@pytest.fixture
def app(settings, db, gateway, mailer):
    return create_app(settings, db=db, gateway=gateway, mailer=mailer)


@pytest_asyncio.fixture
async def client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


# ==================== USERS ====================

def make_token(user_id, secret=JWT_SECRET, expires_in=timedelta(hours=1)):
    payload = {"sub": str(user_id), "exp": datetime.utcnow() + expires_in}
    return jwt.encode(payload, secret, algorithm="HS256")


def auth(user) -> dict:
    return {"Authorization": f"Bearer {make_token(user['_id'])}"}


async def make_user(db, role="student", name="Test Student", email=None):
    user = {
        "name": name,
        "email": email or f"{uuid.uuid4().hex[:8]}@example.com",
        "password_hash": "$2b$12$not-a-real-hash",
        "role": role,
        "bio": None,
        "avatar": None,
        "is_verified": True,
        "reset_password_token": "secret-reset-token",
        "reset_password_expires": datetime.utcnow() + timedelta(hours=1),
        "created_at": datetime.utcnow(),
    }
    result = await db.users.insert_one(user)
    user["_id"] = result.inserted_id
    return user


@pytest_asyncio.fixture
async def student(db):
    return await make_user(db, name="Asha Learner")


@pytest_asyncio.fixture
async def other_student(db):
    return await make_user(db, name="Ravi Other")


@pytest_asyncio.fixture
async def instructor(db):
    return await make_user(db, role="instructor", name="Dr. Mehta")


@pytest_asyncio.fixture
async def admin(db):
    return await make_user(db, role="admin", name="Site Admin")


# ==================== COURSES ====================

async def make_course(db, instructor, title="Python Basics", price=0, is_free=True, published=True):
    course = await store.create_course(db, {
        "title": title,
        "slug": title.lower().replace(" ", "-"),
        "price": price,
        "is_free": is_free,
        "level": "beginner",
        "language": "English",
    }, instructor["_id"])
    if published:
        course = await store.set_course_published(db, course["_id"], True)
    return course


async def add_lectures(db, course, count):
    section = await store.create_section(db, course["_id"], {"title": "Section 1", "order": 0})
    lectures = []
    for i in range(count):
        lectures.append(await store.create_lecture(
            db, course["_id"], section["_id"], {"title": f"Lecture {i + 1}", "order": i}
        ))
    return lectures


@pytest_asyncio.fixture
async def free_course(db, instructor):
    return await make_course(db, instructor, title="Free Python Basics")


@pytest_asyncio.fixture
async def paid_course(db, instructor):
    return await make_course(db, instructor, title="Advanced Django", price=500, is_free=False)


def sign(settings, order_id, payment_id):
    return compute_signature(settings.razorpay_key_secret, order_id, payment_id)
