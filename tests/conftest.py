"""Test configuration and fixtures."""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from idrepo.config import EngineConfig
from idrepo.db import audit_models, models  # noqa: F401
from idrepo.db.base import Base
from idrepo.identity.blob_store import FileBlobStore
from idrepo.identity.encryption import FieldEncryptor, generate_encryption_key
from idrepo.identity.services import IdentityService
from idrepo.identity.stores import SqlSaltStore

from .factories import SHARD_MODULUS


@pytest.fixture
def engine():
    """In-memory database shared by every session of one test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(engine):
    """Create a fresh session for each test."""
    Session = sessionmaker(bind=engine, autoflush=False)
    session = Session()
    yield session
    session.close()


@pytest.fixture
def engine_config() -> EngineConfig:
    return EngineConfig(shard_modulus=SHARD_MODULUS)


@pytest.fixture
def salts(db_session):
    """Provision deterministic salts for every shard."""
    store = SqlSaltStore(db_session)
    for shard in range(SHARD_MODULUS):
        store.provision(shard, f"hash-salt-{shard}", f"encrypt-salt-{shard}")
    db_session.commit()
    return store


@pytest.fixture
def blob_store(tmp_path) -> FileBlobStore:
    return FileBlobStore(tmp_path / "objects")


@pytest.fixture
def encryptor() -> FieldEncryptor:
    return FieldEncryptor(generate_encryption_key())


@pytest.fixture
def service(db_session, engine_config, blob_store, encryptor, salts) -> IdentityService:
    return IdentityService(db_session, engine_config, blob_store, encryptor=encryptor)
