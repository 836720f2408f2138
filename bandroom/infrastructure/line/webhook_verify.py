from __future__ import annotations

import base64
import hashlib
import hmac
import logging


logger = logging.getLogger(__name__)


def compute_signature(body: bytes, channel_secret: str) -> str:
    digest = hmac.new(channel_secret.encode("utf-8"), body, hashlib.sha256).digest()
    return base64.b64encode(digest).decode("ascii")


def verify_signature(body: bytes, signature_header: str | None, channel_secret: str | None, env: str) -> bool:
    if not signature_header:
        if env.lower() in {"dev", "local"}:
            logger.warning("Missing signature header; accepting in dev mode")
            return True
        return False

    if not channel_secret:
        logger.error("Missing channel secret for signature verification")
        return False

    expected = compute_signature(body, channel_secret)
    return hmac.compare_digest(expected, signature_header)
