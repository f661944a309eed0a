"""
Membership Router

멤버십 등록/갱신/조회/취소
등록과 갱신 시 새 멤버십에 연결된 출입코드를 함께 발급합니다.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from lifecycle.errors import NotFoundError
from lifecycle.models import MembershipCreate
from .dependencies import GymContext, GymServices, get_gym_context, get_services
from .responses import ok

router = APIRouter(prefix="/membership", tags=["Membership"])


async def ensure_client_in_gym(services: GymServices, context: GymContext, client_id: str) -> None:
    """다른 체육관 회원이면 NotFoundError (회원이 없으면 원장에서 ValidationError)"""
    if not context.gym_id:
        return
    client = await services.db.get_client(client_id)
    if client and client.get("gym_id") != context.gym_id:
        raise NotFoundError(f"회원을 찾을 수 없습니다: {client_id}")


async def _open_membership(body: MembershipCreate, services: GymServices, context: GymContext) -> dict:
    await ensure_client_in_gym(services, context, body.client_id)

    membership, access_code = await services.onboarding.open_membership(
        body.client_id,
        body.kind,
        start_date=body.start_date,
        end_date=body.end_date,
        price=body.price,
        payment_method=body.payment_method,
        plan_id=body.plan_id
    )

    data = membership.to_api()
    data["accessCode"] = access_code.to_api()
    return data


@router.post("", status_code=201)
async def create_membership(
    body: MembershipCreate,
    services: GymServices = Depends(get_services),
    context: GymContext = Depends(get_gym_context)
):
    """멤버십 등록 (기존 active 멤버십은 expired 처리)"""
    data = await _open_membership(body, services, context)
    return ok(data, "멤버십이 등록되었습니다", status_code=201)


@router.post("/renew", status_code=201)
async def renew_membership(
    body: MembershipCreate,
    services: GymServices = Depends(get_services),
    context: GymContext = Depends(get_gym_context)
):
    """멤버십 갱신"""
    data = await _open_membership(body, services, context)
    return ok(data, "멤버십이 갱신되었습니다", status_code=201)


@router.get("")
async def list_memberships(
    client_id: Optional[str] = Query(None, alias="clientId"),
    services: GymServices = Depends(get_services),
    context: GymContext = Depends(get_gym_context)
):
    """멤버십 목록 (최신 등록순)"""
    memberships = context.scope(await services.ledger.list(client_id))
    return ok([m.to_api() for m in memberships], count=len(memberships))


@router.get("/client/{client_id}/active")
async def get_active_membership(
    client_id: str,
    services: GymServices = Depends(get_services),
    context: GymContext = Depends(get_gym_context)
):
    """회원의 현재 유효한 멤버십 목록 (없으면 빈 목록)"""
    memberships = context.scope(await services.ledger.list_active(client_id))
    return ok([m.to_api() for m in memberships], count=len(memberships))


@router.get("/{membership_id}")
async def get_membership(
    membership_id: str,
    services: GymServices = Depends(get_services),
    context: GymContext = Depends(get_gym_context)
):
    membership = context.ensure(
        await services.ledger.get(membership_id),
        f"멤버십을 찾을 수 없습니다: {membership_id}"
    )
    return ok(membership.to_api())


@router.put("/{membership_id}/cancel")
async def cancel_membership(
    membership_id: str,
    services: GymServices = Depends(get_services),
    context: GymContext = Depends(get_gym_context)
):
    """멤버십 취소 (active만 가능, 연결된 출입코드는 다음 만료 점검에서 비활성화)"""
    context.ensure(
        await services.ledger.get(membership_id),
        f"멤버십을 찾을 수 없습니다: {membership_id}"
    )
    membership = await services.ledger.cancel(membership_id)
    return ok(membership.to_api(), "멤버십이 취소되었습니다")
