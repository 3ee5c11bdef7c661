# app/core/sms_client.py
"""
SMS client for OTP delivery through MSG91 (v5 OTP API).

Responsibilities:
  - Build the provider request from Settings (auth key, template, sender).
  - Provide a single send_otp(phone, code) call for the OTP service.
  - Bound every request with a timeout so a slow gateway cannot hang a request.

Typical .env configuration:

    MSG91_AUTH_KEY=xxxxxxxxxxxxxxxxxxxxxxxx
    MSG91_TEMPLATE_ID=64f0c0ffee0000000000abcd
    MSG91_SENDER=SEEMTI
    MSG91_COUNTRY_CODE=91
    MSG91_TIMEOUT_SECONDS=15

The plaintext code is sent to the provider but never logged here.
"""
import logging
from typing import Any, Callable

import requests
from pydantic import BaseModel

from app.core.config import Settings
from app.core.phone import to_msisdn

logger = logging.getLogger(__name__)

MSG91_OTP_URL = "https://control.msg91.com/api/v5/otp"


class SmsResult(BaseModel):
    ok: bool
    provider_message_id: str | None = None
    error: str | None = None


# (phone, code) -> SmsResult; anything matching this can deliver OTPs.
SmsSender = Callable[[str, str], SmsResult]


def _is_success(payload: Any) -> bool:
    if not isinstance(payload, dict):
        return False
    return payload.get("type") == "success" or payload.get("status") == "success"


class Msg91Client:
    """
    Minimal MSG91 sender.

    MSG91 accounts differ in which request shape they accept (JSON body vs
    query string, with or without template id), so send_otp tries a small,
    fixed list of payload variants against the same endpoint before giving
    up. A timeout stops the attempt immediately.
    """

    def __init__(self, settings: Settings, http: requests.Session | None = None):
        if not settings.MSG91_AUTH_KEY:
            raise RuntimeError("MSG91_AUTH_KEY is not configured. Please set it in .env.")
        self.auth_key = settings.MSG91_AUTH_KEY
        self.template_id = settings.MSG91_TEMPLATE_ID
        self.sender = settings.MSG91_SENDER
        self.country_code = settings.MSG91_COUNTRY_CODE
        self.timeout = settings.MSG91_TIMEOUT_SECONDS
        self.http = http or requests.Session()

    def _variants(self, mobile: str, code: str) -> list[dict[str, Any]]:
        body: dict[str, Any] = {"mobile": mobile, "otp": code}
        if self.template_id:
            body["template_id"] = self.template_id

        with_length = dict(body, otp_length=len(code))
        if self.sender:
            with_length["sender"] = self.sender

        return [
            {"json": body},
            {"params": body},
            {"json": with_length},
        ]

    def send_otp(self, phone: str, code: str) -> SmsResult:
        """
        Deliver `code` to a canonical 10-digit `phone`.

        Returns SmsResult(ok=False, ...) instead of raising on provider
        errors so the caller can roll back its challenge.
        """
        mobile = to_msisdn(phone, self.country_code)
        headers = {"authkey": self.auth_key, "Content-Type": "application/json"}
        last_error = "no attempt made"

        for attempt, variant in enumerate(self._variants(mobile, code), start=1):
            try:
                resp = self.http.post(
                    MSG91_OTP_URL,
                    headers=headers,
                    timeout=self.timeout,
                    **variant,
                )
            except requests.Timeout:
                logger.error("MSG91 send timed out for phone=%s", phone)
                return SmsResult(ok=False, error="timeout")
            except requests.RequestException as exc:
                last_error = str(exc)
                logger.warning(
                    "MSG91 send attempt %d failed for phone=%s: %s", attempt, phone, exc
                )
                continue

            try:
                payload = resp.json()
            except ValueError:
                payload = None

            if resp.ok and _is_success(payload):
                return SmsResult(ok=True, provider_message_id=payload.get("request_id"))

            last_error = (
                payload.get("message") if isinstance(payload, dict) else None
            ) or f"HTTP {resp.status_code}"
            logger.warning(
                "MSG91 rejected attempt %d for phone=%s: %s", attempt, phone, last_error
            )

        return SmsResult(ok=False, error=last_error)
