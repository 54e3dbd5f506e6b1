import logging
from decimal import Decimal

from fastapi import APIRouter, Depends, Header, Request
from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel, Field

from poupapig_assistant.dependencies import Container, get_container
from poupapig_assistant.errors import UnauthorizedError, ValidationError
from poupapig_assistant.services.dispatcher import REPORT_TYPES
from poupapig_assistant.services.rate_limiter import api_rate_key, webhook_rate_key
from poupapig_assistant.services.webhook import extract_inbound_message

logger = logging.getLogger(__name__)

router = APIRouter()


class ReportRequest(BaseModel):
    report_type: str = Field("monthly", description="monthly, weekly, by_category or comparative")


class GoalRequest(BaseModel):
    goal: Decimal = Field(..., description="Monthly spending goal in BRL")


@router.get("/healthz")
def healthz() -> dict:
    return {"status": "ok"}


def _extract_bearer_token(authorization: str | None) -> str:
    if not authorization:
        raise UnauthorizedError("Missing Authorization header")
    if not authorization.startswith("Bearer "):
        raise UnauthorizedError("Invalid Authorization header")
    return authorization.split(" ", 1)[1]


async def enforce_api_rate_limit(
    request: Request, container: Container = Depends(get_container)
) -> None:
    client_address = request.client.host if request.client else None
    await container.api_limiter.check(api_rate_key(client_address, request.url.path))


async def current_user_id(
    authorization: str | None = Header(default=None),
    container: Container = Depends(get_container),
) -> str:
    token = _extract_bearer_token(authorization)
    return await container.authenticator.user_id_for_token(token)


@router.post("/webhook")
async def webhook(request: Request, container: Container = Depends(get_container)) -> dict:
    try:
        payload = await request.json()
    except ValueError as exc:
        raise ValidationError("Invalid webhook payload") from exc

    async with container.webhook_limiter.limit(webhook_rate_key(payload)):
        inbound = extract_inbound_message(payload, container.settings.transport_suffix)
        if inbound.is_self_echo:
            return {"status": "ignored", "reason": "self-message"}

        logger.info("Webhook message from %s on instance %s", inbound.identity, inbound.channel)
        result = await container.pipeline.run(inbound)

    return {
        "status": "processed",
        "message_id": result.message_id,
        "actions": len(result.actions),
    }


api = APIRouter(prefix="/v1", dependencies=[Depends(enforce_api_rate_limit)])


@api.get("/balance")
async def balance(
    period: str | None = None,
    user_id: str = Depends(current_user_id),
    container: Container = Depends(get_container),
) -> dict:
    result = await container.get_balance.execute(user_id, period)
    return {"status": "success", "data": jsonable_encoder(result)}


@api.post("/reports")
async def reports(
    body: ReportRequest,
    user_id: str = Depends(current_user_id),
    container: Container = Depends(get_container),
) -> dict:
    report_type = REPORT_TYPES.get(body.report_type, body.report_type)
    result = await container.generate_report.execute(user_id, report_type)
    return {"status": "success", "data": jsonable_encoder(result)}


@api.put("/goal")
async def goal(
    body: GoalRequest,
    user_id: str = Depends(current_user_id),
    container: Container = Depends(get_container),
) -> dict:
    result = await container.set_monthly_goal.execute(user_id, body.goal)
    return {"status": "success", "data": jsonable_encoder(result)}


router.include_router(api)
