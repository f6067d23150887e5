# tests/conftest.py
from __future__ import annotations

import asyncio
import os
from collections.abc import Callable, Generator, Iterator
from dataclasses import replace
from datetime import datetime
from itertools import count

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

os.environ.setdefault("SECRET_KEY", "test-secret-key-for-oauth-state")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SALESFORCE_CLIENT_ID", "test-client-id")
os.environ.setdefault("SALESFORCE_CLIENT_SECRET", "test-client-secret")

from workpunch_relay.api.v1 import dependencies as deps
from workpunch_relay.db.session import Base
from workpunch_relay.db.session import get_db as app_get_session
from workpunch_relay.main import app as fastapi_app
from workpunch_relay.models import Company
from workpunch_relay.services.locks import LockManager
from workpunch_relay.services.salesforce import Credential, ExternalPunchRecord, LocationType


class FakeGateway:
    """In-memory stand-in for the Salesforce gateway.

    Behaves like a single tenant's ``Workpunch__c`` table and records every
    write so tests can assert on the exact calls made.
    """

    def __init__(self) -> None:
        self.records: dict[str, ExternalPunchRecord] = {}
        self.writes: list[tuple[str, str]] = []
        self.queries = 0
        self.credentials: list[Credential] = []
        # When set, find_active_record blocks until the event fires.
        self.hold: asyncio.Event | None = None
        self.entered: asyncio.Event | None = None
        self.fail_with: Exception | None = None
        self._ids = count(1)

    async def __aenter__(self) -> FakeGateway:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        return None

    def factory(self, credential: Credential) -> FakeGateway:
        self.credentials.append(credential)
        return self

    def seed(
        self,
        subject_id: str,
        punch_in: datetime,
        punch_out: datetime | None = None,
        *,
        is_remote: bool = False,
        name: str | None = None,
    ) -> ExternalPunchRecord:
        record = ExternalPunchRecord(
            record_id=self._next_id(),
            subject_id=subject_id,
            punch_in=punch_in,
            punch_out=punch_out,
            location_type=LocationType.from_flag(is_remote),
            name=name,
        )
        self.records[record.record_id] = record
        return record

    def active_records(self, subject_id: str) -> list[ExternalPunchRecord]:
        return [
            record
            for record in self.records.values()
            if record.subject_id == subject_id and record.punch_out is None
        ]

    def _next_id(self) -> str:
        return f"a0X{next(self._ids):015d}"

    async def find_active_record(self, subject_id: str) -> ExternalPunchRecord | None:
        self.queries += 1
        if self.entered is not None:
            self.entered.set()
        if self.hold is not None:
            await self.hold.wait()
        if self.fail_with is not None:
            raise self.fail_with
        active = self.active_records(subject_id)
        return max(active, key=lambda record: record.punch_in, default=None)

    async def create_record(
        self,
        *,
        subject_id: str,
        punch_in: datetime,
        is_remote: bool,
        name: str | None = None,
    ) -> str:
        record = self.seed(subject_id, punch_in, is_remote=is_remote, name=name)
        self.writes.append(("create", record.record_id))
        return record.record_id

    async def close_record(self, record_id: str, punch_out: datetime) -> None:
        self.records[record_id] = replace(self.records[record_id], punch_out=punch_out)
        self.writes.append(("close", record_id))

    async def list_punch_records(self) -> list[ExternalPunchRecord]:
        return sorted(
            self.records.values(),
            key=lambda record: (record.subject_id, -record.punch_in.timestamp()),
        )


@pytest.fixture(scope="session")
def engine(tmp_path_factory: pytest.TempPathFactory) -> Generator[Engine, None, None]:
    # File-backed so lock sessions running in worker threads get their own connections.
    db_path = tmp_path_factory.mktemp("db") / "workpunch.sqlite"
    engine = create_engine(
        f"sqlite:///{db_path}",
        connect_args={"check_same_thread": False, "timeout": 15},
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def session_factory(engine: Engine) -> Iterator[Callable[[], Session]]:
    factory = sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)
    try:
        yield factory
    finally:
        # Locks and credentials are committed by the code under test; wipe them.
        with engine.begin() as cleanup_conn:
            for table in reversed(Base.metadata.sorted_tables):
                cleanup_conn.execute(table.delete())


@pytest.fixture()
def db_session(session_factory: Callable[[], Session]) -> Iterator[Session]:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def lock_manager(session_factory: Callable[[], Session]) -> LockManager:
    return LockManager(session_factory)


@pytest.fixture()
def fake_gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture(autouse=True)
def override_dependencies(
    app: FastAPI,
    db_session: Session,
    lock_manager: LockManager,
    fake_gateway: FakeGateway,
) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    overrides: dict[Callable[..., object], Callable[..., object]] = {
        app_get_session: _get_session_override,
        deps.get_lock_manager_dep: lambda: lock_manager,
        deps.get_gateway_factory: lambda: fake_gateway.factory,
    }
    app.dependency_overrides.update(overrides)
    try:
        yield
    finally:
        for dependency in overrides:
            app.dependency_overrides.pop(dependency, None)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


@pytest.fixture()
def connected_company(db_session: Session) -> Company:
    """Create and return a company holding Salesforce tokens."""
    company = Company(
        organization_code="org_1700000000000abc123",
        company_name="Acme",
        company_domain="acme.com",
        salesforce_access_token="00Dxx0000000001!AQ4AQtokenvalue",
        salesforce_refresh_token="5Aep861refresh",
        salesforce_instance_url="https://acme.my.salesforce.com",
    )
    db_session.add(company)
    db_session.commit()
    return company


@pytest.fixture()
def pending_company(db_session: Session) -> Company:
    """Create and return a company that has not completed OAuth yet."""
    company = Company(
        organization_code="org_1700000000001def456",
        company_name="globex",
        company_domain="globex.com",
    )
    db_session.add(company)
    db_session.commit()
    return company
