"""
Webhook handlers for Cashfree
"""

import json

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request
from starlette.concurrency import run_in_threadpool

from core.dependencies import get_provider
from payments.cashfree_service import CashfreePaymentProvider
from payments.errors import Unauthorized
from payments.schemas import ProviderWebhookPayload

router = APIRouter()

log = structlog.get_logger(__name__)


@router.post("/webhooks/cashfree")
async def cashfree_webhook(
    request: Request, provider: CashfreePaymentProvider = Depends(get_provider)
):
    # Signature is computed over these exact bytes
    raw_body = await request.body()

    try:
        data = json.loads(raw_body)
    except ValueError:
        data = {}
    if not isinstance(data, dict):
        data = {}

    payload = ProviderWebhookPayload(
        data=data, raw_data=raw_body, headers=dict(request.headers)
    )

    try:
        result = await run_in_threadpool(provider.get_webhook_action_and_data, payload)
    except Unauthorized as e:
        raise HTTPException(status_code=401, detail=str(e))

    return result.model_dump(mode="json")
