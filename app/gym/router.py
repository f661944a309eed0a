"""
Gym Router

체육관 회원 관리 메인 라우터
- 회원 등록 (초기 멤버십 + 출입코드)
- 멤버십 플랜
- 멤버십 / 출입코드 / 알림 하위 라우터
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from lifecycle.errors import AuthenticationError, NotFoundError, ValidationError
from lifecycle.models import ClientCreate, ClientLogin, PlanTemplate, PlanTemplateCreate
from .access_codes import router as access_code_router
from .dependencies import GymContext, GymServices, get_gym_context, get_services
from .memberships import router as membership_router
from .notifications import router as notification_router
from .responses import ok

router = APIRouter()

router.include_router(membership_router)
router.include_router(access_code_router)
router.include_router(notification_router)


# =============================================
# Client
# =============================================

@router.post("/client", status_code=201, tags=["Client"])
async def create_client(
    body: ClientCreate,
    services: GymServices = Depends(get_services),
    context: GymContext = Depends(get_gym_context)
):
    """
    회원 등록

    회원 저장 후 초기 멤버십을 개설하고 출입코드를 발급합니다.
    X-Gym-Id 헤더가 있으면 해당 체육관 소속으로 등록됩니다.
    """
    if context.gym_id:
        if body.gym_id and body.gym_id != context.gym_id:
            raise ValidationError("다른 체육관에 회원을 등록할 수 없습니다")
        body.gym_id = context.gym_id

    enrollment = await services.onboarding.onboard(body)
    return ok(enrollment.to_api(), "회원이 등록되었습니다", status_code=201)


@router.post("/client/login", tags=["Client"])
async def login_client(
    body: ClientLogin,
    services: GymServices = Depends(get_services),
    context: GymContext = Depends(get_gym_context)
):
    """회원 이메일/비밀번호 확인 (세션/토큰 없음)"""
    client = await services.onboarding.authenticate(body.email, body.password)
    if not context.owns(client):
        raise AuthenticationError("이메일 또는 비밀번호가 올바르지 않습니다")
    return ok(client.to_api(), "확인되었습니다")


@router.get("/client/{client_id}", tags=["Client"])
async def get_client(
    client_id: str,
    services: GymServices = Depends(get_services),
    context: GymContext = Depends(get_gym_context)
):
    client = await services.onboarding.get_client(client_id)
    if not context.owns(client):
        raise NotFoundError(f"회원을 찾을 수 없습니다: {client_id}")
    return ok(client.to_api())


# =============================================
# Plan
# =============================================

@router.get("/plan", tags=["Plan"])
async def list_plans(
    active: Optional[bool] = Query(None),
    services: GymServices = Depends(get_services)
):
    """멤버십 플랜 목록 (기간순)"""
    plans = [PlanTemplate(**row) for row in await services.db.list_plans(active)]
    return ok([p.to_api() for p in plans], count=len(plans))


@router.post("/plan", status_code=201, tags=["Plan"])
async def create_plan(
    body: PlanTemplateCreate,
    services: GymServices = Depends(get_services)
):
    row = await services.db.insert_plan(body.model_dump())
    return ok(PlanTemplate(**row).to_api(), "플랜이 등록되었습니다", status_code=201)
