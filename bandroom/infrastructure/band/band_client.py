from __future__ import annotations

import logging

import httpx

from bandroom.application.exceptions import NotificationError
from bandroom.application.ports.notifier import NotifierPort


class BandNotifier(NotifierPort):
    """Posts notices to the group's BAND board."""

    def __init__(
        self,
        access_token: str,
        band_key: str,
        post_endpoint: str,
        client: httpx.Client | None = None,
    ) -> None:
        self._access_token = access_token
        self._band_key = band_key
        self._post_endpoint = post_endpoint
        self._client = client or httpx.Client(timeout=10.0)
        self._logger = logging.getLogger(__name__)

    def post(self, content: str) -> None:
        params = {
            "access_token": self._access_token,
            "band_key": self._band_key,
            "content": content,
            "do_push": "true",
        }
        try:
            resp = self._client.post(self._post_endpoint, params=params)
        except httpx.HTTPError as e:
            self._logger.error("BAND post request failed", extra={"reason": str(e)})
            raise NotificationError(f"BAND post request failed: {e}") from e

        try:
            body = resp.json()
        except ValueError:
            body = {}

        if resp.status_code >= 400 or body.get("result_code") != 1:
            self._logger.error(
                "BAND post failed",
                extra={"status": resp.status_code, "reason": body.get("result_data") or resp.text},
            )
            raise NotificationError(f"BAND post failed: {resp.text}")
