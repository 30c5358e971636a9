"""Welcome-email function guarded by signed-request authentication."""

from __future__ import annotations

import json
import logging

from fastapi import APIRouter, Request
from pydantic import ValidationError

from elaro_edge.api.v1.dependencies import AuthenticatorDep, EmailClientDep, ServiceRoleKeyDep
from elaro_edge.core.errors import PayloadValidationError
from elaro_edge.schemas import WelcomeEmailRequest, WelcomeEmailResponse
from elaro_edge.services.email import render_welcome_email

logger = logging.getLogger(__name__)

router = APIRouter(tags=["functions"])

MISSING_FIELDS_MESSAGE = "Missing required fields: userEmail and userId"


def parse_welcome_payload(raw_body: bytes) -> WelcomeEmailRequest:
    """Decode the authenticated body into a welcome-email request.

    Raises:
        PayloadValidationError: If the body is not JSON or lacks required fields.
    """
    try:
        data = json.loads(raw_body)
    except (UnicodeDecodeError, json.JSONDecodeError) as err:
        raise PayloadValidationError("Invalid JSON body") from err
    if not isinstance(data, dict):
        raise PayloadValidationError("Invalid JSON body")
    try:
        return WelcomeEmailRequest.model_validate(data)
    except ValidationError as err:
        raise PayloadValidationError(MISSING_FIELDS_MESSAGE) from err


@router.post("/send-welcome-email", response_model=WelcomeEmailResponse)
async def send_welcome_email(
    request: Request,
    authenticator: AuthenticatorDep,
    email_client: EmailClientDep,
    service_role_key: ServiceRoleKeyDep,
) -> WelcomeEmailResponse:
    """Send the welcome email for a newly registered user.

    The raw body is read before any parsing because the signature covers its
    exact bytes. Both the HMAC signature and the bearer credential must pass
    before the payload is looked at.
    """
    raw_body = await request.body()

    authenticator.ensure_store_ready()
    authenticator.verify(request.headers, raw_body)
    authenticator.verify_bearer(request.headers.get("Authorization"), service_role_key)

    payload = parse_welcome_payload(raw_body)
    logger.info("Sending welcome email to user %s", payload.user_id)

    email = render_welcome_email(payload.user_email, payload.user_first_name)
    email_id = await email_client.send(email)

    logger.info("Welcome email sent to user %s", payload.user_id)
    return WelcomeEmailResponse(email_id=email_id)
