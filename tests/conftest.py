import hashlib
import hmac
import json
import os
import time

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("STRIPE_WEBHOOK_SECRET", "whsec_test")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from coursehub import models
from coursehub.database import Base, get_db
from coursehub.errors import GatewayError
from coursehub.main import app
from coursehub.payments import StripeGateway, get_payment_gateway
from coursehub.security import create_access_token, hash_password

WEBHOOK_SECRET = "whsec_test"

engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class FakeGateway(StripeGateway):
    """Records checkout calls instead of talking to Stripe; webhook verification is real."""

    def __init__(self):
        super().__init__(secret_key="sk_test", webhook_secret=WEBHOOK_SECRET)
        self.sessions = []
        self.fail = False

    def create_checkout_session(self, **kwargs):
        if self.fail:
            raise GatewayError("CHECKOUT_SESSION_FAILED", "gateway down")
        session = {"id": f"cs_test_{len(self.sessions) + 1}", "url": "https://checkout.test/session"}
        self.sessions.append({**kwargs, "session": session})
        return session


@pytest.fixture()
def db():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def gateway():
    return FakeGateway()


@pytest.fixture()
def client(db, gateway):
    def override_get_db():
        session = TestingSessionLocal()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_payment_gateway] = lambda: gateway
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture()
def make_user(db):
    counter = {"n": 0}

    def _make(role=models.Role.STUDENT, username=None, password="secret123", verified=True, **extra):
        counter["n"] += 1
        username = username or f"{role.value.lower()}{counter['n']}"
        user = models.User(
            email=f"{username}@example.com",
            username=username,
            hashed_password=hash_password(password),
            role=role.value,
            is_verified=verified,
            **extra,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


def auth(user):
    return {"Authorization": f"Bearer {create_access_token(user)}"}


@pytest.fixture()
def student(make_user):
    return make_user(models.Role.STUDENT, username="alice")


@pytest.fixture()
def teacher(make_user):
    return make_user(models.Role.TEACHER, username="tom", first_name="Tom", last_name="Teach")


@pytest.fixture()
def admin(make_user):
    return make_user(models.Role.ADMIN, username="root")


@pytest.fixture()
def category(db):
    category = models.Category(name="Programming")
    db.add(category)
    db.commit()
    db.refresh(category)
    return category


@pytest.fixture()
def make_course(db, teacher, category):
    def _make(price=50.0, title="Python 101", contents=("Intro", "Variables"), quiz=False):
        course = models.Course(title=title, description="Learn Python", price=price,
                               category_id=category.id, teacher_id=teacher.id)
        module = models.Module(title="Basics", order=1, course=course)
        for index, name in enumerate(contents, start=1):
            db.add(models.Content(title=name, order=index, content_type=models.ContentType.VIDEO.value,
                                  video_url=f"https://videos.test/{index}.mp4", duration_in_seconds=60,
                                  module=module))
        if quiz:
            db.add(models.Content(title="Checkpoint", order=len(contents) + 1,
                                  content_type=models.ContentType.QUIZ.value, time_limit_in_minutes=10,
                                  module=module))
        db.add_all([course, module])
        db.commit()
        db.refresh(course)
        return course

    return _make


@pytest.fixture()
def course(make_course):
    return make_course()


@pytest.fixture()
def enroll(db):
    """Give a student a paid enrollment without going through checkout."""

    def _enroll(student, course, status=models.PaymentStatus.SUCCESSFUL, amount=None):
        enrollment = models.Enrollment(student_id=student.id, course_id=course.id)
        payment = models.Payment(amount=course.price if amount is None else amount, status=status.value,
                                 stripe_session_id=f"cs_seed_{student.id}_{course.id}", student_id=student.id,
                                 enrollment=enrollment)
        db.add_all([enrollment, payment])
        db.commit()
        db.refresh(enrollment)
        return enrollment

    return _enroll


def stripe_signature(payload, secret=WEBHOOK_SECRET, timestamp=None):
    """Build a Stripe-Signature header the way Stripe signs webhook deliveries."""
    timestamp = int(time.time()) if timestamp is None else timestamp
    digest = hmac.new(secret.encode(), f"{timestamp}.".encode() + payload, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={digest}"


def signed_event(event, secret=WEBHOOK_SECRET, timestamp=None):
    payload = json.dumps(event).encode()
    return payload, stripe_signature(payload, secret, timestamp)


def completed_event(payment_id, session_id="cs_live_1", amount_total=None):
    session = {"id": session_id, "metadata": {"paymentId": str(payment_id)}}
    if amount_total is not None:
        session["amount_total"] = amount_total
    return {"type": "checkout.session.completed", "data": {"object": session}}
