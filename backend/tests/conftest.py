"""
Test fixtures and configuration for pytest.
"""

import os
import sys
import tempfile
from io import BytesIO
from typing import AsyncGenerator
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from PIL import Image
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# Settings are cached on first access, so the test environment is fixed up
# before any application module is imported.
os.environ.setdefault("APP_MODE", "dev")
os.environ.setdefault("STORAGE_BACKEND", "local")
os.environ.setdefault("LOCAL_STORAGE_DIR", tempfile.mkdtemp(prefix="physique-storage-"))
os.environ.setdefault("GOOGLE_API_KEY", "")
os.environ.setdefault("REPLICATE_API_TOKEN", "")

from db.database import Base, get_db
from models import BodyMetric, PhotoAsset, UserProfile
from schemas.physique import PhysiqueVisionAnalysis, UserProfileSnapshot

# Test database URL (SQLite for testing)
TEST_DATABASE_URL = "sqlite+aiosqlite:///./test_physique.db"

engine = create_async_engine(TEST_DATABASE_URL, echo=False)
TestingSessionLocal = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)


@pytest_asyncio.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh database session for each test."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with TestingSessionLocal() as session:
        yield session

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


# ============== Image Fixtures ==============


def make_image_bytes(size=(64, 128), color=(200, 30, 30, 255), fmt="PNG") -> bytes:
    mode = "RGBA" if fmt == "PNG" else "RGB"
    img = Image.new(mode, size, color=color if mode == "RGBA" else color[:3])
    buffer = BytesIO()
    img.save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture
def sample_image_bytes() -> bytes:
    """Solid red PNG."""
    return make_image_bytes()


@pytest.fixture
def sample_jpeg_bytes() -> bytes:
    return make_image_bytes(color=(20, 20, 220, 255), fmt="JPEG")


# ============== Domain Fixtures ==============


@pytest.fixture
def profile_snapshot() -> UserProfileSnapshot:
    return UserProfileSnapshot(
        experience_level="intermediate",
        goal="hypertrophy",
        days_per_week=4,
        equipment=["full_gym"],
        injuries=[],
        weight=180.0,
    )


@pytest.fixture
def vision_analysis() -> PhysiqueVisionAnalysis:
    return PhysiqueVisionAnalysis(
        body_fat_range="15-18%",
        build_type="average",
        muscle_development="moderate chest, underdeveloped shoulders",
        key_opportunities=["shoulders", "back", "arms", "chest"],
        realistic_changes="Reduce body fat to ~14% and add visible shoulder width.",
        facial_hair="short beard",
        face_end_percent=22,
    )


@pytest.fixture
def analysis_payload() -> dict:
    """A valid plan-analysis completion in wire (camelCase) form."""
    return {
        "estimatedCurrent": {
            "postureNotes": ["Slight anterior pelvic tilt"],
            "muscleEmphasisOpportunities": ["shoulders", "upper back"],
            "estimatedTrainingAge": "1-2 years",
        },
        "scenario": "3_month_lock_in",
        "planUpdate": {
            "splitType": "Upper/Lower",
            "weeklySchedule": ["Upper", "Lower", "Rest", "Upper", "Lower"],
            "keyExercises": [
                {
                    "name": "Overhead Press",
                    "targetMuscle": "shoulders",
                    "sets": 4,
                    "repsRange": "6-10",
                    "priority": "high",
                }
            ],
            "progressionRules": ["Add 2.5kg when all sets hit the top of the range"],
        },
        "nutritionTargets": {
            "calories": 2700,
            "proteinGrams": 180,
            "carbsGrams": 300,
            "fatGrams": 80,
            "notes": "Slight surplus on training days",
        },
        "explanation": "Focus on shoulders and back for a wider frame.",
    }


@pytest_asyncio.fixture
async def user_profile(db_session: AsyncSession) -> UserProfile:
    profile = UserProfile(
        id="0b7c6a8e-4f3a-4d54-9d0e-5c1f2f6a9b10",
        experience_level="beginner",
        goal="cut",
        days_per_week=5,
        equipment=["home_dumbbells"],
        injuries=["left shoulder"],
        is_age_verified=True,
    )
    db_session.add(profile)
    await db_session.commit()
    return profile


@pytest_asyncio.fixture
async def input_photo(db_session: AsyncSession, user_profile: UserProfile) -> PhotoAsset:
    photo = PhotoAsset(
        user_id=user_profile.id,
        type="physique_input",
        storage_key=f"{user_profile.id}/physique_input/3f2a7c1e-0000-4000-8000-000000000001",
    )
    db_session.add(photo)
    await db_session.commit()
    return photo


# ============== Auth ==============


def make_token(subject: str, **overrides) -> str:
    from jose import jwt

    from config import get_settings

    settings = get_settings()
    claims = {
        "sub": subject,
        "aud": settings.JWT_AUDIENCE,
        "iss": settings.JWT_ISSUER,
    }
    claims.update(overrides)
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


@pytest.fixture
def auth_headers(user_profile: UserProfile) -> dict:
    return {"Authorization": f"Bearer {make_token(user_profile.id)}"}


# ============== Client Fixtures ==============


@pytest.fixture
def photo_storage(tmp_path):
    from services.storage import LocalPhotoStorage

    return LocalPhotoStorage(tmp_path / "storage", "http://test")


@pytest.fixture
def mock_simulator():
    simulator = MagicMock()
    simulator.analyze_and_simulate = AsyncMock()
    return simulator


@pytest_asyncio.fixture(scope="function")
async def client(
    db_session: AsyncSession, photo_storage, mock_simulator
) -> AsyncGenerator[AsyncClient, None]:
    """Test client with database override and injected collaborators."""
    from main import app

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.state.photo_storage = photo_storage
    app.state.physique_simulator = mock_simulator

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
    app.state.physique_simulator = None


@pytest.fixture
def add_body_metric(db_session: AsyncSession):
    async def _add(user_id: str, when, weight) -> None:
        db_session.add(BodyMetric(user_id=user_id, date=when, weight=weight))
        await db_session.commit()

    return _add


@pytest.fixture
def token_for():
    """Bearer headers for an arbitrary subject."""

    def _headers(subject: str, **overrides) -> dict:
        return {"Authorization": f"Bearer {make_token(subject, **overrides)}"}

    return _headers
