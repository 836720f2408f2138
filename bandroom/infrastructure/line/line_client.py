from __future__ import annotations

import logging
from typing import Any

import httpx

from bandroom.application.exceptions import PlatformSendError


class LineClient:
    def __init__(self, access_token: str, reply_endpoint: str, client: httpx.Client | None = None) -> None:
        self._access_token = access_token
        self._reply_endpoint = reply_endpoint
        self._client = client or httpx.Client(timeout=10.0)
        self._logger = logging.getLogger(__name__)

    def reply(self, reply_token: str, messages: list[dict[str, Any]]) -> None:
        payload = {"replyToken": reply_token, "messages": messages}
        headers = {"Authorization": f"Bearer {self._access_token}"}
        try:
            resp = self._client.post(self._reply_endpoint, headers=headers, json=payload)
        except httpx.HTTPError as e:
            self._logger.error("LINE reply request failed", extra={"reason": str(e)})
            raise PlatformSendError(f"LINE reply request failed: {e}") from e

        if resp.status_code >= 400:
            try:
                error_message = resp.json().get("message")
            except ValueError:
                error_message = resp.text

            self._logger.error(
                "LINE reply failed",
                extra={
                    "status": resp.status_code,
                    "reason": error_message,
                    "count": len(messages),
                },
            )
            raise PlatformSendError(f"LINE reply failed with status {resp.status_code}: {error_message}")
