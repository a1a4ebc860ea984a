"""
Transactional email dispatch.

Best-effort side channel: a failed send is logged and reported as False,
never raised, and never undoes the operation that triggered it.
"""

from __future__ import annotations

import httpx
from flask import current_app

from ..models import DepositRequest, User
from ..extensions import db


def _post(payload: dict) -> bool:
    url = current_app.config.get("EMAIL_DISPATCH_URL")
    if not url:
        current_app.logger.info("EMAIL_DISPATCH_URL not configured; skipping %s email", payload.get("type"))
        return False

    headers = {"Content-Type": "application/json"}
    token = current_app.config.get("EMAIL_DISPATCH_TOKEN")
    if token:
        headers["Authorization"] = f"Bearer {token}"

    try:
        with httpx.Client(timeout=current_app.config.get("EMAIL_TIMEOUT_SECONDS", 10.0)) as client:
            response = client.post(url, json=payload, headers=headers)
            response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        current_app.logger.warning(
            "Email dispatch for %s returned HTTP %s", payload.get("type"), exc.response.status_code
        )
        return False
    except httpx.HTTPError as exc:
        current_app.logger.warning("Email dispatch for %s failed: %s", payload.get("type"), exc)
        return False

    return True


def send_deposit_approved_email(deposit: DepositRequest) -> bool:
    user = db.session.get(User, deposit.user_id)
    if user is None:
        current_app.logger.warning("Deposit %s has no user; email skipped", deposit.id)
        return False

    return _post({
        "type": "deposit_approved",
        "userEmail": user.email,
        "userName": user.full_name or user.email,
        "depositAmount": float(deposit.amount),
    })
