import os

os.environ.setdefault("WALLET_DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("WALLET_CREATE_TABLES_ON_STARTUP", "false")

import uuid  # noqa: E402
from datetime import datetime, timedelta  # noqa: E402

import httpx  # noqa: E402
import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402

from wallet.auth.service import create_access_token  # noqa: E402
from wallet.credentials.repository import insert_credential  # noqa: E402
from wallet.database import create_tables, get_db  # noqa: E402
from wallet.disclosure.policy import build_policy  # noqa: E402
from wallet.main import app  # noqa: E402
from wallet.models import Share, User  # noqa: E402

DEGREE_PAYLOAD = {
    "student_name": "Asha Verma",
    "degree": "BSc",
    "university": "University of Delhi",
    "year": "2024",
    "email": "asha.verma@example.com",
    "registration_number": "DU2020CS0412",
}


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'wallet.db'}")
    await create_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


async def _make_user(db, email):
    user = User(email=email, full_name=email.split("@")[0].title())
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


@pytest_asyncio.fixture
async def user(db):
    return await _make_user(db, "holder@example.com")


@pytest_asyncio.fixture
async def other_user(db):
    return await _make_user(db, "someone-else@example.com")


@pytest_asyncio.fixture
async def credential(db, user):
    return await insert_credential(
        db,
        user.id,
        title="Bachelor of Science",
        type="degree",
        category="degree",
        issuer="du.ac.in",
        issuer_name="University of Delhi",
        issuer_domain="du.ac.in",
        subject="Asha Verma",
        issued_date=datetime(2024, 6, 30),
        payload=dict(DEGREE_PAYLOAD),
    )


@pytest.fixture
def make_share(db, user, credential):
    """Insert a share row directly, bypassing issuance validation."""

    async def _make_share(
        preset="full",
        overrides=None,
        expires_in=timedelta(minutes=15),
        max_views=5,
        views=0,
        access_code=None,
        revoked=False,
        payload_fields=None,
    ):
        fields = payload_fields or (credential.payload or {}).keys()
        policy = build_policy(preset, fields, overrides)
        share = Share(
            id=uuid.uuid4().hex,
            user_id=user.id,
            cred_id=credential.id,
            policy=policy.to_json(),
            expires_at=datetime.utcnow() + expires_in,
            max_views=max_views,
            views=views,
            access_code=access_code,
            revoked=revoked,
        )
        db.add(share)
        await db.commit()
        return share

    return _make_share


@pytest.fixture
def auth_headers(user):
    return {"Authorization": f"Bearer {create_access_token(str(user.id))}"}


@pytest_asyncio.fixture
async def client(session_factory):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac
    app.dependency_overrides.clear()
