import os
import unittest
from datetime import datetime, timedelta, timezone
from unittest.mock import patch
from uuid import UUID, uuid4

from botocore.exceptions import ClientError
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, delete
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Ensure settings can be initialized in test environments
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/0")
os.environ.setdefault("S3_ENDPOINT", "http://localhost:9000")
os.environ.setdefault("S3_ACCESS_KEY", "test")
os.environ.setdefault("S3_SECRET_KEY", "test")
os.environ.setdefault("S3_BUCKET", "test")

from app.core.config import settings
from app.core.security import create_access_token, create_jwt, hash_password, verify_password
from app.db.session import get_db
from app.main import app
from app.models.customer import Customer, CustomerNote
from app.models.property import Property
from app.models.task import Task
from app.models.user import User
from app.services.rate_limit import InMemoryRateLimiter, reset_rate_limiter_for_tests


class FakeBody:
    def __init__(self, payload: bytes):
        self.payload = payload

    def iter_chunks(self, chunk_size=65536):
        for i in range(0, len(self.payload), chunk_size):
            yield self.payload[i : i + chunk_size]


class FakeS3Storage:
    def __init__(self):
        self.objects = {}
        self.deleted = []

    def put_object(self, key: str, content: bytes, mime_type: str) -> None:
        self.objects[key] = {"content": content, "mime": mime_type, "size": len(content)}

    def get_object(self, key: str) -> dict:
        obj = self.objects.get(key)
        if obj is None:
            raise ClientError({"Error": {"Code": "NoSuchKey", "Message": "Not Found"}}, "GetObject")
        return {"Body": FakeBody(obj["content"]), "ContentType": obj["mime"], "ContentLength": obj["size"]}

    def delete_object(self, key: str) -> None:
        self.deleted.append(key)
        self.objects.pop(key, None)


class CrmApiBase(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.engine = create_engine(
            "sqlite+pysqlite:///:memory:",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        cls.SessionLocal = sessionmaker(bind=cls.engine, autocommit=False, autoflush=False)
        User.__table__.create(bind=cls.engine)
        Customer.__table__.create(bind=cls.engine)
        CustomerNote.__table__.create(bind=cls.engine)
        Property.__table__.create(bind=cls.engine)
        Task.__table__.create(bind=cls.engine)

    @classmethod
    def tearDownClass(cls):
        Task.__table__.drop(bind=cls.engine)
        Property.__table__.drop(bind=cls.engine)
        CustomerNote.__table__.drop(bind=cls.engine)
        Customer.__table__.drop(bind=cls.engine)
        User.__table__.drop(bind=cls.engine)
        cls.engine.dispose()

    def setUp(self):
        with self.SessionLocal() as db:
            db.execute(delete(Task))
            db.execute(delete(Property))
            db.execute(delete(CustomerNote))
            db.execute(delete(Customer))
            db.execute(delete(User))
            db.commit()

        def override_get_db():
            db = self.SessionLocal()
            try:
                yield db
            finally:
                db.close()

        app.dependency_overrides[get_db] = override_get_db
        reset_rate_limiter_for_tests(InMemoryRateLimiter())
        self.client = TestClient(app)

    def tearDown(self):
        self.client.close()
        app.dependency_overrides.clear()
        reset_rate_limiter_for_tests(None)

    @staticmethod
    def _auth_headers(firm_name: str = "Skyline Realty", email: str = "agent@example.com", sub: str | None = None) -> dict[str, str]:
        token = create_access_token(user_id=str(sub or uuid4()), email=email, firm_name=firm_name)
        return {"Authorization": f"Bearer {token}"}

    def _create_customer(self, **fields) -> Customer:
        values = {
            "cust_id": "1001",
            "name": "Asha Rao",
            "phone": "9800000001",
            "email": "asha@example.com",
            "deal_type": "Buy",
            "bhk": "3BHK",
            "property_types": ["Apartment"],
            "budget": 15000000.0,
            "status": "New",
        }
        values.update(fields)
        with self.SessionLocal() as db:
            row = Customer(**values)
            db.add(row)
            db.commit()
            db.refresh(row)
            db.expunge(row)
            return row
