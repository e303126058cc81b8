"""Exotel SMS and voice operations exposed as tools.

Each operation resolves the caller's Authorization header for the current
session, parses it into a CredentialBundle and talks to the Exotel REST API
through the shared VendorClient. Vendor failures are reported in the result
body as {"message": ...} rather than raised, so an MCP client always gets a
readable answer.
"""

import asyncio
import json
import logging
import uuid
from collections.abc import Sequence
from typing import Any

from ..auth.credentials import AuthError, CredentialBundle, parse_auth_header
from ..auth.session import AuthHeaderStore, get_auth_store, resolve_auth_header
from ..config import Settings, settings as default_settings
from ..phone import format_phone_number_for_query, strip_country_code
from ..vendor.cache import MetadataCache
from ..vendor.client import VendorClient
from ..vendor.errors import VendorError
from .callbacks import CallbackStore

logger = logging.getLogger(__name__)

STATUS_CALLBACK_CONTENT_TYPE = "application/json"
SMS_TYPE = "promotional"
SEARCH_RESULT_LIMIT = 5


def error_message(error: Exception) -> str:
    """Vendor-style error body: {"message": "..."}."""
    return json.dumps({"message": str(error)})


def lookup_error(error: Exception) -> dict:
    return {
        "status_data": f"Not found because {error}",
        "error_details": f"{type(error).__name__}: {error}",
    }


class ExotelService:
    """Tool implementations over the Exotel API and the callback store."""

    def __init__(
        self,
        client: VendorClient,
        cache: MetadataCache,
        callbacks: CallbackStore,
        store: AuthHeaderStore | None = None,
        settings: Settings | None = None,
    ):
        self.client = client
        self.cache = cache
        self.callbacks = callbacks
        self.store = store if store is not None else get_auth_store()
        self.settings = settings or default_settings
        # Identifies this gateway instance in status callback URLs
        self.callback_id = str(uuid.uuid4())
        self._background: set[asyncio.Task] = set()

    # ============ HELPERS ============

    def credentials(self) -> CredentialBundle:
        """Credentials for the current session.

        Raises:
            AuthError: When strict_auth is on and no usable header was found
        """
        result = parse_auth_header(resolve_auth_header(self.store))
        if not result.ok:
            if self.settings.strict_auth:
                raise result.error
            logger.warning(f"Continuing with default credentials: {result.error}")
        return result.bundle

    def sms_callback_url(self, credentials: CredentialBundle) -> str:
        return f"{self.settings.base_url}/sms-status-callback/{self.callback_id}/{credentials.token_md5}"

    def call_callback_url(self, credentials: CredentialBundle) -> str:
        return f"{self.settings.base_url}/call-status/{self.callback_id}/{credentials.token_md5}"

    def _call_form(self, credentials: CredentialBundle, **fields: str) -> dict[str, str]:
        return {
            **fields,
            "CallerId": credentials.caller_id,
            "StatusCallback": self.call_callback_url(credentials),
            "StatusCallbackContentType": STATUS_CALLBACK_CONTENT_TYPE,
            "Record": "true",
        }

    async def _connect_call(self, credentials: CredentialBundle, form: dict[str, str]) -> str:
        response = await self.client.post_form(
            credentials.account_url("Calls/connect.json"), form, credentials
        )
        logger.info(f"Call connect response: {response}")
        await self.callbacks.save_initial_voice(response, credentials.user_id)
        return response

    def _spawn(self, coro) -> None:
        task = asyncio.create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def drain(self) -> None:
        """Wait for pending background persistence tasks."""
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)

    # ============ SMS ============

    async def send_sms_to_user(
        self, to_number: str, message: str, dlt_template_id: str, dlt_entity_id: str
    ) -> str:
        """Send a DLT-compliant SMS to one number."""
        logger.info(f"Sending SMS to: {to_number}")
        try:
            credentials = self.credentials()
            callback_url = self.sms_callback_url(credentials)
            logger.info(f"Sending SMS. Callback URL: {callback_url}")

            form = {
                "From": credentials.from_number,
                "To": to_number,
                "Body": message,
                "StatusCallback": callback_url,
                "StatusCallbackContentType": STATUS_CALLBACK_CONTENT_TYPE,
                "SmsType": SMS_TYPE,
                "DltTemplateId": dlt_template_id,
                "DltEntityId": dlt_entity_id,
            }
            response = await self.client.post_form(
                credentials.account_url("Sms/send.json"), form, credentials
            )
            logger.info(f"SMS response: {response}")
        except (AuthError, VendorError) as e:
            logger.error(f"Error sending SMS: {e}")
            return error_message(e)

        self._spawn(self.callbacks.save_initial_sms(response, credentials.user_id))
        return response

    async def send_message_to_bulk_numbers(self, to_numbers: Sequence[str], message: str) -> str:
        """Send the same SMS to several numbers."""
        logger.info(f"Sending bulk SMS to: {list(to_numbers)}")
        try:
            credentials = self.credentials()
            callback_url = self.sms_callback_url(credentials)

            form: dict[str, str] = {"From": credentials.from_number}
            for i, number in enumerate(to_numbers):
                form[f"To[{i}]"] = number
            form.update(
                Body=message,
                StatusCallback=callback_url,
                StatusCallbackContentType=STATUS_CALLBACK_CONTENT_TYPE,
            )
            response = await self.client.post_form(
                credentials.account_url("Sms/send.json"), form, credentials
            )
            logger.info(f"Bulk SMS response: {response}")
        except (AuthError, VendorError) as e:
            logger.error(f"Error sending bulk SMS: {e}")
            return error_message(e)

        await self.callbacks.save_initial_bulk_sms(response, credentials.user_id)
        return response

    async def send_dynamic_bulk_sms(self, messages: Sequence[Any]) -> str:
        """Send a different SMS body to each number.

        Args:
            messages: Items with Body and To, as objects or mappings
        """
        logger.info(f"Sending dynamic bulk SMS with {len(messages)} messages")
        try:
            credentials = self.credentials()
            form = {
                "From": credentials.from_number,
                "StatusCallback": self.sms_callback_url(credentials),
                "StatusCallbackContentType": STATUS_CALLBACK_CONTENT_TYPE,
            }
            for idx, item in enumerate(messages):
                body = item["Body"] if isinstance(item, dict) else item.Body
                to = item["To"] if isinstance(item, dict) else item.To
                form[f"Message[{idx}][Body]"] = body
                form[f"Message[{idx}][To]"] = to

            response = await self.client.post_form(
                credentials.account_url("Sms/bulksend.json"), form, credentials
            )
            logger.info(f"Dynamic bulk SMS response: {response}")
        except (AuthError, VendorError) as e:
            logger.error(f"Error sending dynamic bulk SMS: {e}")
            return error_message(e)

        await self.callbacks.save_initial_bulk_sms(response, credentials.user_id)
        return response

    # ============ VOICE ============

    async def send_voice_call_to_user(self, to_number: str) -> str:
        """Call the user, bridged to the account's own from_number."""
        logger.info(f"Sending voice call to: {to_number}")
        try:
            credentials = self.credentials()
            form = self._call_form(credentials, From=to_number, To=credentials.from_number)
            return await self._connect_call(credentials, form)
        except (AuthError, VendorError) as e:
            logger.error(f"Error sending voice call: {e}")
            return error_message(e)

    async def outgoing_call_to_connect_number(self, from_number: str, to_number: str) -> str:
        """Connect two arbitrary numbers."""
        logger.info(f"Sending voice call from: {from_number} to: {to_number}")
        try:
            credentials = self.credentials()
            form = self._call_form(credentials, From=from_number, To=to_number)
            return await self._connect_call(credentials, form)
        except (AuthError, VendorError) as e:
            logger.error(f"Error connecting call: {e}")
            return error_message(e)

    async def connect_number_to_call_flow(self, app_id: str, from_number: str) -> str:
        """Connect a number to a call flow (ExoML app) by app id."""
        logger.info(f"Connecting call flow: {app_id}")
        try:
            credentials = self.credentials()
            flow_url = f"{credentials.exotel_portal_url}/{credentials.account_sid}/exoml/start_voice/{app_id}"
            form = self._call_form(credentials, From=from_number, Url=flow_url)
            return await self._connect_call(credentials, form)
        except (AuthError, VendorError) as e:
            logger.error(f"Error connecting call flow: {e}")
            return error_message(e)

    async def get_bulk_call_details(self, from_number: str | None) -> str:
        """List calls placed from a number."""
        logger.info("Fetching bulk voice call details")
        try:
            credentials = self.credentials()
            url = f"{credentials.account_url('Calls')}?From=0{strip_country_code(from_number)}"
            return await self.client.get(url, credentials)
        except (AuthError, VendorError) as e:
            logger.error(f"Error fetching bulk call details: {e}")
            return json.dumps({"data": f"Not able to fetch bulk call details due to {e}"})

    async def get_number_metadata(self, number: str) -> str:
        """Number metadata, cached per account and number."""
        logger.info(f"Fetching number metadata for: {number}")
        try:
            credentials = self.credentials()
            url = credentials.account_url(f"Numbers/{number}")
            cache_key = f"metadata:{credentials.account_sid}:{number}"
            return await self.cache.get(
                cache_key,
                lambda: self.client.get(url, credentials),
                self.settings.metadata_cache_ttl_minutes,
            )
        except (AuthError, VendorError) as e:
            logger.error(f"Error fetching number metadata for {number}: {e}")
            return f"Not able to fetch number metadata due to {e}"

    # ============ CALLBACK LOOKUPS ============

    async def get_sms_callbacks(self, phone_number: str) -> dict:
        """SMS status records sent to a number, for the current user."""
        logger.info(f"Fetching SMS callbacks for phone number: {phone_number}")
        try:
            credentials = self.credentials()
            formatted = format_phone_number_for_query(phone_number)
            records = await self.callbacks.find_sms_by_number(formatted, credentials.user_id)
        except Exception as e:
            logger.error(f"Database error in get_sms_callbacks: {e}")
            return lookup_error(e)

        logger.info(f"Found {len(records)} SMS callbacks for phone number: {formatted}")
        return {
            "status_data": records,
            "search_info": {
                "phone_number": phone_number,
                "formatted_number": formatted,
                "records_found": len(records),
                "search_type": "SMS to_number with user_id security",
            },
        }

    async def get_voice_call_callbacks(self, phone_number: str) -> dict:
        """Call records where the number is either party, for the current user."""
        logger.info(f"Fetching voice callbacks for phone number: {phone_number}")
        try:
            credentials = self.credentials()
            formatted = format_phone_number_for_query(phone_number)
            user_id = credentials.user_id
            records = await self.callbacks.find_voice_by_number(formatted, user_id)
        except Exception as e:
            logger.error(f"Database error in get_voice_call_callbacks: {e}")
            return lookup_error(e)

        logger.info(f"Found {len(records)} voice callbacks for phone number: {formatted}")
        return {
            "status_data": records,
            "search_info": {
                "phone_number": phone_number,
                "formatted_number": formatted,
                "user_id": user_id,
                "records_found": len(records),
                "search_type": "to_number OR from_number with user_id security",
            },
        }

    async def get_call_flow_callbacks(self, from_number: str) -> dict:
        """Call records placed from a number, for the current user."""
        logger.info(f"Fetching call flow callbacks for from_number: {from_number}")
        try:
            credentials = self.credentials()
            formatted = format_phone_number_for_query(from_number)
            user_id = credentials.user_id
            records = await self.callbacks.find_voice_by_from_number(formatted, user_id)
        except Exception as e:
            logger.error(f"Database error in get_call_flow_callbacks: {e}")
            return lookup_error(e)

        return {
            "status_data": records,
            "search_info": {
                "from_number": from_number,
                "formatted_number": formatted,
                "user_id": user_id,
                "records_found": len(records),
                "search_type": "Call flow: from_number with user_id security",
            },
        }

    async def search_voice_callbacks_by_number(self, phone_number: str) -> str:
        """Readable summary of at most five call records for a number."""
        if not phone_number or not phone_number.strip():
            return "Error: Phone number is required"

        try:
            credentials = self.credentials()
            formatted = format_phone_number_for_query(phone_number)
            records = await self.callbacks.find_voice_by_number(formatted, credentials.user_id)
        except Exception as e:
            return f"Search Error: {e}"

        lines = [
            f"Search Results for Phone Number: {phone_number}",
            f"Formatted Number: {formatted}",
            "Search Type: to_number OR from_number with user_id security",
            f"Found {len(records)} records",
            "",
        ]
        if not records:
            lines += [
                "No voice callbacks found for this phone number.",
                "This could mean:",
                "- No calls made to/from this number with your auth token",
                "- Phone number format mismatch",
            ]
            return "\n".join(lines) + "\n"

        for i, record in enumerate(records[:SEARCH_RESULT_LIMIT], start=1):
            direction = "OUTGOING" if record.get("toNumber") == formatted else "INCOMING"
            recording = "Available" if record.get("recordingUrl") else "Not available"
            lines += [
                f"=== Record {i} ({direction} Call) ===",
                f"CallSid: {record.get('callSid')}",
                f"Status: {record.get('status')}",
                f"From: {record.get('fromNumber')}",
                f"To: {record.get('toNumber')}",
                f"Date: {record.get('dateUpdated')}",
                f"Recording: {recording}",
                "",
            ]

        if len(records) > SEARCH_RESULT_LIMIT:
            lines += [
                f"... and {len(records) - SEARCH_RESULT_LIMIT} more records",
                f"Use getVoiceCallCallbacks('{phone_number}') for complete list",
            ]
        return "\n".join(lines) + "\n"

    async def get_call_details(self, call_sid: str) -> str:
        """Readable detail of one call record."""
        if not call_sid or not call_sid.strip():
            return "Error: CallSid is required"

        try:
            record = await self.callbacks.find_voice_by_call_sid(call_sid)
        except Exception as e:
            return f"Search Error: {e}"
        if record is None:
            return f"No record found for CallSid: {call_sid}"

        lines = [
            f"Call Details for CallSid: {call_sid}",
            "=====================================",
            f"Status: {record.get('status')}",
            f"From Number: {record.get('fromNumber')}",
            f"To Number: {record.get('toNumber')}",
            f"Start Time: {record.get('startTime')}",
            f"End Time: {record.get('endTime')}",
            f"Duration: {record.get('duration')}",
            f"Direction: {record.get('direction')}",
            f"Answered By: {record.get('answeredBy')}",
            f"Date Created: {record.get('dateCreated')}",
            f"Date Updated: {record.get('dateUpdated')}",
            f"Recording URL: {record.get('recordingUrl') or 'Not available'}",
            f"Price: {record.get('price')}",
        ]
        return "\n".join(lines) + "\n"
