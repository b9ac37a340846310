import os
import tempfile

os.environ.setdefault("NONCE_SALT", "test-nonce-salt")
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("UPLOADS_DIR", tempfile.mkdtemp(prefix="form-fields-uploads-"))
os.environ.setdefault("UPLOADS_URL", "http://testserver/uploads")

from typing import Generator
import pytest
from unittest.mock import Mock
from sqlalchemy import create_engine, StaticPool
from sqlalchemy.orm import sessionmaker, Session
from fastapi.testclient import TestClient
from faker import Faker

from main import app
from models.base import Base
from models import MediaItem
from db.session import get_db
from core.hooks import Hooks
from schemas.form import Form, FormField, MailerConfig
from services.cleanup_scheduler import CleanupScheduler
from services.local_upload_service import LocalUploadService
from services.private_upload_service import PrivateUploadService

fake = Faker()

# Test database setup
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={
        "check_same_thread": False,
    },
    poolclass=StaticPool,
)

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db_session() -> Generator[Session, None, None]:
    """Create a test database session."""
    Base.metadata.create_all(bind=engine)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db_session: Session) -> Generator[TestClient, None, None]:
    """Create a test client with database session override."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def hooks() -> Hooks:
    return Hooks()


@pytest.fixture
def uploader(tmp_path) -> LocalUploadService:
    """Upload service writing below a temporary uploads directory."""
    return LocalUploadService(
        base_dir=str(tmp_path / "uploads"),
        base_url="http://testserver/uploads",
        max_bytes=1024 * 1024,
        allowed_extensions={"txt", "pdf", "png"},
    )


@pytest.fixture
def mock_scheduler() -> Mock:
    scheduler = Mock(spec=CleanupScheduler)
    scheduler.schedule.return_value = "job-id"
    return scheduler


@pytest.fixture
def private_upload_service(uploader, mock_scheduler, hooks) -> PrivateUploadService:
    return PrivateUploadService(
        uploader=uploader,
        scheduler=mock_scheduler,
        hooks=hooks,
        secret="test-nonce-salt",
        cleanup_delay=3600,
    )


@pytest.fixture
def sample_form() -> Form:
    """A form with one advanced file field, one plain file field and a text field."""
    return Form(
        ID="CF5a1b2c3d4e5f6",
        name=fake.sentence(nb_words=3),
        fields={
            "fld_1001": FormField(ID="fld_1001", type="advanced_file", slug="attachments"),
            "fld_1002": FormField(ID="fld_1002", type="file", slug="photo"),
            "fld_1003": FormField(ID="fld_1003", type="text", slug="name"),
        },
        mailer=MailerConfig(on_insert=False),
    )


@pytest.fixture
def sample_media_item(db_session: Session) -> MediaItem:
    """Create a sample media item for testing."""
    item = MediaItem(
        guid=f"/srv/uploads/2024/05/{fake.file_name(extension='pdf')}",
        url=fake.url(),
        mime_type="application/pdf",
        title=fake.word(),
        content="",
        status="inherit",
    )
    db_session.add(item)
    db_session.commit()
    db_session.refresh(item)
    return item
