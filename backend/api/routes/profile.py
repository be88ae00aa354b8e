import logging

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_current_user_id
from db.database import get_db
from models import UserProfile
from schemas.profile import AgeVerificationRequest, AgeVerificationResponse
from services.moderation import verify_age

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/profile", tags=["profile"])


async def get_profile_or_404(db: AsyncSession, user_id: str) -> UserProfile:
    result = await db.execute(select(UserProfile).where(UserProfile.id == user_id))
    profile = result.scalar_one_or_none()
    if profile is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Profile not found"
        )
    return profile


@router.post("/verify-age", response_model=AgeVerificationResponse)
async def verify_profile_age(
    body: AgeVerificationRequest,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Age gate for the physique feature: records the date of birth once the caller is 18+."""
    profile = await get_profile_or_404(db, user_id)

    is_over_18, age = verify_age(body.date_of_birth)
    if not is_over_18:
        logger.info("Age verification refused for user %s", user_id)
        return JSONResponse(
            status_code=status.HTTP_403_FORBIDDEN,
            content={
                "detail": "You must be 18 or older to use the physique feature",
                "age": age,
            },
        )

    profile.date_of_birth = body.date_of_birth
    profile.is_age_verified = True
    await db.commit()

    logger.info("Age verified for user %s", user_id)
    return AgeVerificationResponse(verified=True, age=age)
