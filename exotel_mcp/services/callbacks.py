"""Persistence of SMS and voice callback records.

Records are created from the vendor's response when an SMS or call is
initiated, then updated by the vendor's status webhooks. Every record is
scoped by user_id (the MD5 of the caller's token) so lookups only return the
caller's own traffic.
"""

import json
import logging
import re
from collections.abc import Awaitable, Callable
from typing import Any

from ..db import get_db
from ..phone import digits_only, format_phone_number_for_query

logger = logging.getLogger(__name__)

_BRACKETS = re.compile(r"^\['|'\]$")

# Webhook field -> VoiceCallback column, for fields a status update may change
VOICE_UPDATE_FIELDS = {
    "Status": "status",
    "RecordingUrl": "recordingUrl",
    "DateUpdated": "dateUpdated",
    "EndTime": "endTime",
    "Duration": "duration",
    "Price": "price",
    "AnsweredBy": "answeredBy",
}

# Vendor field -> VoiceCallback column, for full records
VOICE_FIELDS = {
    "Sid": "sid",
    "ParentCallSid": "parentCallSid",
    "DateCreated": "dateCreated",
    "DateUpdated": "dateUpdated",
    "AccountSid": "accountSid",
    "PhoneNumberSid": "phoneNumberSid",
    "StartTime": "startTime",
    "EndTime": "endTime",
    "Duration": "duration",
    "Price": "price",
    "Direction": "direction",
    "AnsweredBy": "answeredBy",
    "ForwardedFrom": "forwardedFrom",
    "CallerName": "callerName",
    "Uri": "uri",
    "RecordingUrl": "recordingUrl",
    "Status": "status",
}

SMS_STATUS_FIELDS = {
    "Status": "status",
    "DetailedStatus": "detailedStatus",
    "DetailedStatusCode": "detailedStatusCode",
    "SmsUnits": "smsUnits",
    "DateSent": "dateSent",
}


def clean_value(value: Any) -> str:
    """Strip the ['...'] wrapper some webhook payloads put around values."""
    if value is None:
        return ""
    return _BRACKETS.sub("", str(value))


def _text(node: dict, key: str) -> str:
    value = node.get(key)
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def record_to_dict(record: Any) -> dict:
    """Plain dict view of a database record."""
    if record is None:
        return {}
    if isinstance(record, dict):
        return dict(record)
    if hasattr(record, "model_dump"):
        return record.model_dump()
    return dict(vars(record))


class CallbackStore:
    """Stores and queries callback records through the Prisma client."""

    def __init__(self, db_getter: Callable[[], Awaitable[Any]] = get_db):
        self._get_db = db_getter

    # ============ INITIAL RECORDS FROM VENDOR RESPONSES ============

    def _sms_record(self, node: dict, user_id: str) -> dict:
        return {
            "userId": user_id,
            "smsSid": _text(node, "Sid"),
            "toNumber": format_phone_number_for_query(_text(node, "To")),
            "status": _text(node, "Status"),
            "detailedStatus": _text(node, "DetailedStatus"),
            "detailedStatusCode": _text(node, "DetailedStatusCode"),
            "smsUnits": _text(node, "SmsUnits"),
            "dateSent": _text(node, "DateCreated"),
        }

    async def save_initial_sms(self, response_text: str, user_id: str) -> int:
        """Create a record from a single-SMS send response.

        Returns:
            Number of records saved (0 or 1). Errors are logged, not raised.
        """
        try:
            payload = json.loads(response_text)
            node = payload.get("SMSMessage") if isinstance(payload, dict) else None
            if not isinstance(node, dict):
                logger.debug("SMS response has no SMSMessage object, nothing to save")
                return 0

            db = await self._get_db()
            data = self._sms_record(node, user_id)
            await db.smscallback.create(data=data)
            logger.info(f"Saved initial SMS callback with SmsSid: {data['smsSid']} and to_number: {data['toNumber']}")
            return 1
        except Exception as e:
            logger.error(f"Error saving initial SMS callback: {e}", exc_info=True)
            return 0

    async def save_initial_bulk_sms(self, response_text: str, user_id: str) -> int:
        """Create records from a bulk-SMS send response (a JSON array)."""
        try:
            payload = json.loads(response_text)
        except ValueError as e:
            logger.error(f"Error parsing bulk SMS response: {e}")
            return 0

        if not isinstance(payload, list):
            logger.warning("Bulk SMS response is not an array, falling back to single SMS parsing")
            return await self.save_initial_sms(response_text, user_id)

        logger.info(f"Processing bulk SMS response with {len(payload)} messages")
        saved = 0
        try:
            db = await self._get_db()
            for item in payload:
                node = item.get("SMSMessage") if isinstance(item, dict) else None
                if not isinstance(node, dict):
                    continue
                data = self._sms_record(node, user_id)
                await db.smscallback.create(data=data)
                saved += 1
                logger.info(f"Saved bulk SMS callback with SmsSid: {data['smsSid']} for number: {data['toNumber']}")
        except Exception as e:
            logger.error(f"Error saving bulk SMS callbacks: {e}", exc_info=True)
        return saved

    async def save_initial_voice(self, response_text: str, user_id: str) -> int:
        """Create a record from a call-connect response."""
        try:
            payload = json.loads(response_text)
            node = payload.get("Call") if isinstance(payload, dict) else None
            if not isinstance(node, dict):
                logger.debug("Call response has no Call object, nothing to save")
                return 0

            data = {column: _text(node, key) for key, column in VOICE_FIELDS.items()}
            data.update(
                userId=user_id,
                toNumber=format_phone_number_for_query(_text(node, "To")),
                fromNumber=format_phone_number_for_query(_text(node, "From")),
                callSid=_text(node, "Sid"),
            )

            db = await self._get_db()
            await db.voicecallback.create(data=data)
            logger.info(
                f"Saved initial voice callback with CallSid: {data['callSid']}, "
                f"to_number: {data['toNumber']}, from_number: {data['fromNumber']}"
            )
            return 1
        except Exception as e:
            logger.error(f"Error saving initial voice callback: {e}", exc_info=True)
            return 0

    # ============ WEBHOOK UPDATES ============

    async def save_sms_callback(self, data: dict[str, str], user_id: str) -> None:
        """Apply an SMS status webhook, creating the record if it is missing."""
        sms_sid = data.get("SmsSid")
        logger.info(f"Processing SMS callback for SmsSid: {sms_sid}")

        if not sms_sid:
            logger.error("SmsSid is null or empty in callback data")
            return

        db = await self._get_db()
        updates = {column: clean_value(data.get(key)) for key, column in SMS_STATUS_FIELDS.items()}
        existing = await db.smscallback.find_first(where={"smsSid": sms_sid})

        if existing is not None:
            await db.smscallback.update(where={"id": existing.id}, data=updates)
            logger.info(f"Updated existing SMS callback with SmsSid: {sms_sid}")
            return

        logger.warning(f"No existing SMS callback found for SmsSid: {sms_sid}, creating record from callback")
        await db.smscallback.create(
            data={
                "userId": user_id,
                "smsSid": clean_value(sms_sid),
                "toNumber": format_phone_number_for_query(data.get("To")),
                **updates,
            }
        )

    async def save_voice_callback(self, data: dict[str, str], user_id: str) -> None:
        """Apply a call status webhook, creating the record if it is missing."""
        call_sid = data.get("CallSid")
        logger.info(f"Processing voice callback for CallSid: {call_sid}")

        db = await self._get_db()

        if call_sid:
            existing = await db.voicecallback.find_first(where={"callSid": call_sid})
            if existing is not None:
                updates = {
                    column: clean_value(data[key])
                    for key, column in VOICE_UPDATE_FIELDS.items()
                    if key in data
                }
                if updates:
                    await db.voicecallback.update(where={"id": existing.id}, data=updates)
                logger.info(f"Updated existing voice callback with CallSid: {call_sid}")
                return
            logger.warning(f"No existing voice callback found for CallSid: {call_sid}, creating record from callback")
        else:
            logger.warning("No CallSid provided in callback data, creating new record")

        record = {column: clean_value(data.get(key)) for key, column in VOICE_FIELDS.items()}
        record.update(
            userId=user_id,
            toNumber=digits_only(data.get("To")),
            fromNumber=clean_value(data.get("From")),
            callSid=clean_value(call_sid),
        )
        await db.voicecallback.create(data=record)

    # ============ QUERIES ============

    async def find_sms_by_number(self, number: str, user_id: str) -> list[dict]:
        db = await self._get_db()
        rows = await db.smscallback.find_many(where={"toNumber": number, "userId": user_id})
        return [record_to_dict(r) for r in rows]

    async def find_voice_by_number(self, number: str, user_id: str) -> list[dict]:
        """Calls where the number is either party."""
        db = await self._get_db()
        rows = await db.voicecallback.find_many(
            where={
                "userId": user_id,
                "OR": [{"toNumber": number}, {"fromNumber": number}],
            }
        )
        return [record_to_dict(r) for r in rows]

    async def find_voice_by_from_number(self, number: str, user_id: str) -> list[dict]:
        db = await self._get_db()
        rows = await db.voicecallback.find_many(where={"fromNumber": number, "userId": user_id})
        return [record_to_dict(r) for r in rows]

    async def find_voice_by_call_sid(self, call_sid: str) -> dict | None:
        db = await self._get_db()
        row = await db.voicecallback.find_first(where={"callSid": call_sid})
        return record_to_dict(row) if row is not None else None
