"""REST endpoints mirroring the MCP tools, and vendor status webhooks.

The REST endpoints authenticate exactly like MCP tool calls: the request's
Authorization header reaches the ExotelService through the request context
set up by AuthContextMiddleware.
"""

import json
import logging
from typing import Any

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response

from ..models import BulkDynamicSmsRequest, BulkSmsRequest
from ..services.exotel import ExotelService
from .deps import get_exotel_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Exotel"])
webhooks = APIRouter(tags=["Webhooks"])


def text_response(body: str) -> Response:
    """Return vendor text as JSON when it is JSON, plain text otherwise."""
    try:
        json.loads(body)
    except ValueError:
        return PlainTextResponse(body)
    return Response(content=body, media_type="application/json")


# ============ SMS ============


@router.get("/send-sms-to-user")
async def send_sms_to_user(
    toNumber: str = Query(...),
    message: str = Query(...),
    dltTemplateId: str = Query(...),
    dltEntityId: str = Query(...),
    service: ExotelService = Depends(get_exotel_service),
):
    return text_response(
        await service.send_sms_to_user(toNumber, message, dltTemplateId, dltEntityId)
    )


@router.post("/send-message-to-bulk-numbers")
async def send_message_to_bulk_numbers(
    payload: BulkSmsRequest,
    service: ExotelService = Depends(get_exotel_service),
):
    return text_response(
        await service.send_message_to_bulk_numbers(payload.toNumber, payload.message)
    )


@router.post("/send-dynamic-bulk-sms")
async def send_dynamic_bulk_sms(
    payload: BulkDynamicSmsRequest,
    service: ExotelService = Depends(get_exotel_service),
):
    return text_response(await service.send_dynamic_bulk_sms(payload.message))


# ============ VOICE ============


@router.get("/send-voice-call-to-user")
async def send_voice_call_to_user(
    toNumber: str = Query(...),
    service: ExotelService = Depends(get_exotel_service),
):
    return text_response(await service.send_voice_call_to_user(toNumber))


@router.get("/outgoing-call-to-connect-number")
async def outgoing_call_to_connect_number(
    fromNumber: str = Query(...),
    toNumber: str = Query(...),
    service: ExotelService = Depends(get_exotel_service),
):
    return text_response(await service.outgoing_call_to_connect_number(fromNumber, toNumber))


@router.get("/connect-number-to-call-flow")
async def connect_number_to_call_flow(
    appId: str = Query(...),
    fromNumber: str = Query(...),
    service: ExotelService = Depends(get_exotel_service),
):
    return text_response(await service.connect_number_to_call_flow(appId, fromNumber))


# ============ LOOKUPS ============


@router.get("/get-bulk-call-details")
async def get_bulk_call_details(
    fromNumber: str = Query(...),
    service: ExotelService = Depends(get_exotel_service),
):
    return text_response(await service.get_bulk_call_details(fromNumber))


@router.get("/get-number-metadata")
async def get_number_metadata(
    number: str = Query(...),
    service: ExotelService = Depends(get_exotel_service),
):
    return text_response(await service.get_number_metadata(number))


@router.get("/get-sms-callbacks")
async def get_sms_callbacks(
    toNumber: str = Query(...),
    service: ExotelService = Depends(get_exotel_service),
) -> dict:
    return await service.get_sms_callbacks(toNumber)


@router.get("/get-voice-call-callbacks")
async def get_voice_call_callbacks(
    toNumber: str = Query(...),
    service: ExotelService = Depends(get_exotel_service),
) -> dict:
    return await service.get_voice_call_callbacks(toNumber)


@router.get("/get-call-flow-callbacks")
async def get_call_flow_callbacks(
    fromNumber: str = Query(...),
    service: ExotelService = Depends(get_exotel_service),
) -> dict:
    return await service.get_call_flow_callbacks(fromNumber)


# ============ VENDOR WEBHOOKS ============


async def read_callback_data(request: Request) -> dict[str, str]:
    """Flatten a webhook body (JSON object or form) into string fields.

    JSON values that are null are dropped; for repeated form fields the
    first value wins.
    """
    content_type = request.headers.get("content-type", "")
    if "application/json" in content_type:
        try:
            payload: Any = await request.json()
        except ValueError:
            logger.warning("Callback body is not valid JSON")
            return {}
        if not isinstance(payload, dict):
            return {}
        return {key: str(value) for key, value in payload.items() if value is not None}

    form = await request.form()
    data: dict[str, str] = {}
    for key, value in form.multi_items():
        if isinstance(value, str):
            data.setdefault(key, value)
    return data


@webhooks.post("/sms-status-callback/{callback_id}/{token_md5}")
async def sms_status_callback(
    callback_id: str,
    token_md5: str,
    request: Request,
    service: ExotelService = Depends(get_exotel_service),
):
    """Status updates for SMS sent through this gateway."""
    logger.info(f"Received SMS callback for ID: {callback_id}")
    data = await read_callback_data(request)
    if not data:
        logger.warning("No SMS callback data received")
        return JSONResponse(status_code=400, content={"message": "No callback data provided"})

    try:
        await service.callbacks.save_sms_callback(data, token_md5)
    except Exception as e:
        logger.error(f"Error processing SMS callback for ID {callback_id}: {e}", exc_info=True)
        return JSONResponse(status_code=400, content={"message": str(e)})

    return {
        "message": "SMS callback received and processed successfully",
        "callback_id": callback_id,
        "sms_sid": data.get("SmsSid"),
        "status": data.get("Status"),
    }


@webhooks.post("/call-status/{callback_id}/{token_md5}")
async def call_status_callback(
    callback_id: str,
    token_md5: str,
    request: Request,
    service: ExotelService = Depends(get_exotel_service),
):
    """Status updates for calls placed through this gateway."""
    logger.info(f"Received call status callback for ID: {callback_id}")
    data = await read_callback_data(request)
    if not data:
        logger.warning("No call status callback data received")
        return JSONResponse(status_code=400, content={"message": "No callback data provided"})

    try:
        await service.callbacks.save_voice_callback(data, token_md5)
    except Exception as e:
        logger.error(f"Error processing call callback for ID {callback_id}: {e}", exc_info=True)
        return JSONResponse(status_code=400, content={"message": str(e)})

    return {
        "message": "Call status callback received and processed successfully",
        "callback_id": callback_id,
        "call_sid": data.get("CallSid"),
        "status": data.get("Status"),
    }
