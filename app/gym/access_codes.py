"""
Access Code Router

QR 출입코드 발급/검증/조회
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from lifecycle.models import AccessCodeCreate, AccessCodeValidate
from .dependencies import GymContext, GymServices, get_gym_context, get_services
from .memberships import ensure_client_in_gym
from .responses import ok

router = APIRouter(prefix="/access-code", tags=["Access Code"])


@router.post("", status_code=201)
async def create_access_code(
    body: AccessCodeCreate,
    services: GymServices = Depends(get_services),
    context: GymContext = Depends(get_gym_context)
):
    """출입코드 발급 (유효기간 기본값: 멤버십 종료일)"""
    await ensure_client_in_gym(services, context, body.client_id)
    access_code = await services.registry.mint(body.client_id, body.membership_id, expires_at=body.expires_at)
    return ok(access_code.to_api(), "출입코드가 발급되었습니다", status_code=201)


@router.get("")
async def list_access_codes(
    client_id: Optional[str] = Query(None, alias="clientId"),
    membership_id: Optional[str] = Query(None, alias="membershipId"),
    services: GymServices = Depends(get_services),
    context: GymContext = Depends(get_gym_context)
):
    codes = context.scope(await services.registry.list(client_id=client_id, membership_id=membership_id))
    return ok([c.to_api() for c in codes], count=len(codes))


@router.post("/validate")
async def validate_access_code(
    body: AccessCodeValidate,
    services: GymServices = Depends(get_services),
    context: GymContext = Depends(get_gym_context)
):
    """
    출입 검증

    실패 시 reason: inactive / membership_inactive / expired (400), 미등록 코드 404
    다른 체육관 코드는 상태와 관계없이 404
    """
    context.ensure(await services.registry.get_by_code(body.code), "등록되지 않은 출입코드입니다")
    grant = await services.registry.validate(body.code)
    return ok(grant.to_api(), "출입이 확인되었습니다")


@router.get("/code/{code}")
async def get_access_code_by_code(
    code: str,
    services: GymServices = Depends(get_services),
    context: GymContext = Depends(get_gym_context)
):
    """코드 문자열로 조회 (출입 가능 여부는 판단하지 않음)"""
    access_code = context.ensure(await services.registry.get_by_code(code), "등록되지 않은 출입코드입니다")
    return ok(access_code.to_api())


@router.get("/{access_code_id}")
async def get_access_code(
    access_code_id: str,
    services: GymServices = Depends(get_services),
    context: GymContext = Depends(get_gym_context)
):
    access_code = context.ensure(
        await services.registry.get(access_code_id),
        f"출입코드를 찾을 수 없습니다: {access_code_id}"
    )
    return ok(access_code.to_api())
