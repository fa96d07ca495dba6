"""
Daily wellness activities of the signed-in wallet.
"""

from datetime import date
from typing import List, Optional, Union
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from isyourdayok.api.middleware.authentication.jwt_bearer import get_current_wallet
from isyourdayok.api.models.request_models import (
    JournalRequestDTO,
    MeditationRequestDTO,
    MeditationUpdateRequestDTO,
    MoodLogRequestDTO,
)
from isyourdayok.api.models.response_models import CanMeditateResponseDTO
from isyourdayok.core.dependencies import get_wellness_service
from isyourdayok.core.service.activity.models import (
    ActivityResult,
    DailyActivity,
    JournalEntry,
    MeditationSession,
    MoodLog,
    UserStats,
)
from isyourdayok.core.service.activity.wellness_service import WellnessService

router = APIRouter(prefix="/me", tags=["Activities"])


@router.post("/moods", response_model=ActivityResult, status_code=status.HTTP_201_CREATED)
async def log_mood(
    request: MoodLogRequestDTO,
    wallet_address: str = Depends(get_current_wallet),
    wellness_service: WellnessService = Depends(get_wellness_service)
):
    return await wellness_service.log_mood(wallet_address, request.mood.value, request.rating)


@router.get("/moods", response_model=List[MoodLog])
async def list_moods(
    wallet_address: str = Depends(get_current_wallet),
    wellness_service: WellnessService = Depends(get_wellness_service)
):
    return await wellness_service.list_mood_logs(wallet_address)


@router.post("/journals", response_model=ActivityResult, status_code=status.HTTP_201_CREATED)
async def submit_journal(
    request: JournalRequestDTO,
    wallet_address: str = Depends(get_current_wallet),
    wellness_service: WellnessService = Depends(get_wellness_service)
):
    return await wellness_service.submit_journal(wallet_address, request.content)


@router.get("/journals", response_model=List[JournalEntry])
async def list_journals(
    wallet_address: str = Depends(get_current_wallet),
    wellness_service: WellnessService = Depends(get_wellness_service)
):
    return await wellness_service.list_journals(wallet_address)


@router.post(
    "/meditations",
    response_model=Union[ActivityResult, MeditationSession],
    status_code=status.HTTP_201_CREATED
)
async def complete_meditation(
    request: MeditationRequestDTO,
    wallet_address: str = Depends(get_current_wallet),
    wellness_service: WellnessService = Depends(get_wellness_service)
):
    """A session posted with completed=false is stored without any credit"""
    return await wellness_service.complete_meditation(wallet_address, request.duration, request.completed)


@router.get("/meditations", response_model=List[MeditationSession])
async def list_meditations(
    wallet_address: str = Depends(get_current_wallet),
    wellness_service: WellnessService = Depends(get_wellness_service)
):
    return await wellness_service.list_meditations(wallet_address)


@router.get("/meditations/can-meditate", response_model=CanMeditateResponseDTO)
async def can_meditate_today(
    wallet_address: str = Depends(get_current_wallet),
    wellness_service: WellnessService = Depends(get_wellness_service)
):
    return CanMeditateResponseDTO(can_meditate=await wellness_service.can_meditate_today(wallet_address))


@router.patch("/meditations/{session_id}", response_model=MeditationSession)
async def update_meditation(
    session_id: UUID,
    request: MeditationUpdateRequestDTO,
    wallet_address: str = Depends(get_current_wallet),
    wellness_service: WellnessService = Depends(get_wellness_service)
):
    return await wellness_service.set_meditation_completed(wallet_address, session_id, request.completed)


@router.get("/daily-activity", response_model=DailyActivity)
async def get_daily_activity(
    day: Optional[date] = Query(None, alias="date", description="UTC date, defaults to today"),
    wallet_address: str = Depends(get_current_wallet),
    wellness_service: WellnessService = Depends(get_wellness_service)
):
    return await wellness_service.get_daily_activity(wallet_address, day)


@router.get("/stats", response_model=UserStats)
async def get_stats(
    wallet_address: str = Depends(get_current_wallet),
    wellness_service: WellnessService = Depends(get_wellness_service)
):
    """Points and streaks from the points contract when readable, otherwise from the database"""
    return await wellness_service.get_stats(wallet_address)


@router.post("/sync", response_model=UserStats)
async def sync_stats(
    wallet_address: str = Depends(get_current_wallet),
    wellness_service: WellnessService = Depends(get_wellness_service)
):
    return await wellness_service.sync_user(wallet_address)
