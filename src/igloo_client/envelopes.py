"""Igloo envelope tags, parsing and outbound builders."""

from __future__ import annotations

import json
from typing import Any, Dict, Optional

from .models import MalformedEnvelope

TAG_PREFIX = "igloo_"

LIST = "igloo_list"
MY_RENTALS = "igloo_my_rentals"
INFO = "igloo_info"
CAN_ENTER = "igloo_can_enter"
CAN_RENT = "igloo_can_rent"
RENT = "igloo_rent"
RENT_RESULT = "igloo_rent_result"
UPDATE_SETTINGS = "igloo_update_settings"
SETTINGS_RESULT = "igloo_settings_result"
PAY_RENT = "igloo_pay_rent"
PAY_RENT_RESULT = "igloo_pay_rent_result"
PAY_ENTRY = "igloo_pay_entry"
PAY_ENTRY_RESULT = "igloo_pay_entry_result"
OWNER_INFO = "igloo_owner_info"
CHECK_REQUIREMENTS = "igloo_check_requirements"
REQUIREMENTS_STATUS = "igloo_requirements_status"
LEAVE = "igloo_leave"
LEAVE_RESULT = "igloo_leave_result"
VISIT = "igloo_visit"
ELIGIBILITY_CHECK = "igloo_eligibility_check"
UPDATED = "igloo_updated"
KICKED = "igloo_kicked"
ERROR = "igloo_error"

Envelope = Dict[str, Any]


def parse_envelope(raw: Any) -> Envelope:
    """Decode ``raw`` (text, bytes or mapping) into an envelope with a string ``type``."""

    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise MalformedEnvelope("envelope is not utf-8") from exc
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise MalformedEnvelope("envelope is not json") from exc
    if not isinstance(raw, dict):
        raise MalformedEnvelope("envelope must be an object")
    if not isinstance(raw.get("type"), str):
        raise MalformedEnvelope("envelope type missing")
    return raw


def _for_space(tag: str, space_id: str, **fields: Any) -> Envelope:
    payload: Envelope = {"type": tag, "iglooId": space_id}
    payload.update({key: value for key, value in fields.items() if value is not None})
    return payload


def list_spaces() -> Envelope:
    return {"type": LIST}


def list_my_rentals() -> Envelope:
    return {"type": MY_RENTALS}


def space_info(space_id: str) -> Envelope:
    return _for_space(INFO, space_id)


def request_entry(space_id: str) -> Envelope:
    return _for_space(CAN_ENTER, space_id)


def request_rent_quote(space_id: str) -> Envelope:
    return _for_space(CAN_RENT, space_id)


def submit_rental(space_id: str, proof: Optional[str] = None) -> Envelope:
    return _for_space(RENT, space_id, transactionSignature=proof)


def submit_settings(space_id: str, settings: Dict[str, Any]) -> Envelope:
    return _for_space(UPDATE_SETTINGS, space_id, settings=settings)


def submit_rent_payment(space_id: str, proof: str) -> Envelope:
    return _for_space(PAY_RENT, space_id, transactionSignature=proof)


def submit_entry_fee_payment(space_id: str, proof: str) -> Envelope:
    return _for_space(PAY_ENTRY, space_id, transactionSignature=proof)


def request_owner_info(space_id: str) -> Envelope:
    return _for_space(OWNER_INFO, space_id)


def check_requirements(space_id: str) -> Envelope:
    return _for_space(CHECK_REQUIREMENTS, space_id)


def leave_rental(space_id: str) -> Envelope:
    return _for_space(LEAVE, space_id)


def declare_occupancy(space_id: str) -> Envelope:
    return _for_space(VISIT, space_id)


def eligibility_check(space_id: str) -> Envelope:
    return _for_space(ELIGIBILITY_CHECK, space_id)
