import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_current_user_id, get_photo_storage, get_simulator
from api.routes.profile import get_profile_or_404
from config import get_settings
from db.database import get_db
from models import AIResult, BodyMetric, PhotoAsset
from schemas.physique import (
    PhysiqueAIOutput,
    PhysiqueAnalyzeRequest,
    PhysiqueUploadRequest,
    PhysiqueUploadResponse,
    UserProfileSnapshot,
)
from services.error_sanitizer import sanitize_public_error_message
from services.errors import (
    AIEmptyResponseError,
    ExternalTimeoutError,
    ImageGenerationError,
    ImageSafetyRejectionError,
    MalformedAIOutputError,
    PhysiqueError,
)
from services.moderation import check_image_content, validate_content_type, validate_file_size
from services.physique_simulator import PhysiqueSimulator, SimulationRequest
from services.storage import LocalPhotoStorage, PhotoStorage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/physique", tags=["physique"])

INPUT_PHOTO_TYPE = "physique_input"


async def _get_owned_input_photo(
    db: AsyncSession, user_id: str, storage_key: str
) -> PhotoAsset:
    result = await db.execute(
        select(PhotoAsset).where(
            PhotoAsset.storage_key == storage_key,
            PhotoAsset.user_id == user_id,
            PhotoAsset.type == INPUT_PHOTO_TYPE,
        )
    )
    photo = result.scalar_one_or_none()
    if photo is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Photo not found")
    return photo


async def _latest_weight(db: AsyncSession, user_id: str):
    result = await db.execute(
        select(BodyMetric.weight)
        .where(BodyMetric.user_id == user_id)
        .order_by(BodyMetric.date.desc(), BodyMetric.id.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


def _error_response(exc: PhysiqueError) -> JSONResponse:
    """Map a pipeline failure to a client-safe HTTP response."""
    if isinstance(exc, ImageSafetyRejectionError):
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={"detail": exc.user_message},
        )
    if isinstance(exc, MalformedAIOutputError):
        return JSONResponse(
            status_code=status.HTTP_502_BAD_GATEWAY,
            content={"detail": "AI returned malformed data"},
        )
    if isinstance(exc, ExternalTimeoutError):
        return JSONResponse(
            status_code=status.HTTP_504_GATEWAY_TIMEOUT,
            content={"detail": "AI call timed out"},
        )
    if isinstance(exc, (AIEmptyResponseError, ImageGenerationError)):
        return JSONResponse(
            status_code=status.HTTP_502_BAD_GATEWAY,
            content={"detail": "AI call failed"},
        )
    return JSONResponse(
        status_code=status.HTTP_502_BAD_GATEWAY,
        content={
            "detail": sanitize_public_error_message(
                str(exc), fallback="Physique analysis failed"
            )
        },
    )


@router.post("/upload-url", response_model=PhysiqueUploadResponse)
async def create_upload_url(
    body: PhysiqueUploadRequest,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    storage: PhotoStorage = Depends(get_photo_storage),
):
    """Issue a short-lived upload URL for a physique photo."""
    profile = await get_profile_or_404(db, user_id)
    if not profile.is_age_verified:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Age verification required. Please verify your age (18+) "
            "before using the physique feature.",
        )

    target = await storage.create_upload_url(user_id, INPUT_PHOTO_TYPE, body.content_type)
    db.add(PhotoAsset(user_id=user_id, type=INPUT_PHOTO_TYPE, storage_key=target.storage_key))
    await db.commit()

    logger.info("Issued physique upload URL for user %s", user_id)
    return PhysiqueUploadResponse(
        upload_url=target.upload_url,
        storage_key=target.storage_key,
        expires_in=target.expires_in,
    )


@router.put("/uploads/{storage_key:path}", status_code=status.HTTP_204_NO_CONTENT)
async def upload_local_photo(
    storage_key: str,
    request: Request,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    storage: PhotoStorage = Depends(get_photo_storage),
):
    """Development stand-in for a presigned PUT when storage is local."""
    if not isinstance(storage, LocalPhotoStorage):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not found")

    await _get_owned_input_photo(db, user_id, storage_key)

    content_type = (request.headers.get("content-type") or "").split(";", 1)[0].strip()
    if not validate_content_type(content_type):
        raise HTTPException(
            status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
            detail="Only JPEG, PNG and WebP photos are accepted",
        )

    data = await request.body()
    if not data:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Empty upload")
    if not validate_file_size(len(data)):
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail="Photo exceeds the 10 MB limit",
        )

    await storage.write_bytes(storage_key, data)


@router.post("/analyze-and-simulate", response_model=PhysiqueAIOutput, response_model_by_alias=True)
async def analyze_and_simulate(
    body: PhysiqueAnalyzeRequest,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    simulator: PhysiqueSimulator = Depends(get_simulator),
):
    """Run the physique analysis and preview pipeline on an uploaded photo."""
    await _get_owned_input_photo(db, user_id, body.photo_storage_key)

    moderation = await check_image_content(body.photo_storage_key)
    if not moderation.approved:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={
                "detail": "Image did not pass content moderation",
                "reasons": moderation.reasons,
            },
        )

    profile = await get_profile_or_404(db, user_id)
    snapshot = UserProfileSnapshot(
        experience_level=profile.experience_level,
        goal=profile.goal,
        days_per_week=profile.days_per_week,
        equipment=list(profile.equipment or []),
        injuries=list(profile.injuries or []),
        weight=await _latest_weight(db, user_id),
    )

    try:
        result = await simulator.analyze_and_simulate(
            SimulationRequest(
                user_id=user_id,
                photo_storage_key=body.photo_storage_key,
                scenario=body.scenario,
                focus_muscle=body.focus_muscle,
                user_profile=snapshot,
            )
        )
    except PhysiqueError as exc:
        logger.warning(
            "Physique analysis failed for user %s: %s: %s",
            user_id,
            exc.__class__.__name__,
            exc,
        )
        return _error_response(exc)

    db.add(
        AIResult(
            user_id=user_id,
            type="physique",
            input_refs={
                "photoStorageKey": body.photo_storage_key,
                "scenario": body.scenario,
                "focusMuscle": body.focus_muscle,
            },
            output_json=result.model_dump(mode="json", by_alias=True),
        )
    )
    await db.commit()

    logger.info(
        "Physique analysis complete for user %s (image=%s)",
        user_id,
        result.image_result.type,
    )
    return result


@router.get("/health")
async def physique_health(request: Request):
    app_settings = get_settings()
    return {
        "status": "healthy",
        "mode": app_settings.APP_MODE.value,
        "storage_backend": app_settings.STORAGE_BACKEND,
        "ai_completion_enabled": app_settings.ai_completion_enabled,
        "image_generation_enabled": app_settings.image_generation_enabled,
        "simulator_ready": getattr(request.app.state, "physique_simulator", None) is not None,
    }
