#!/usr/bin/env python3
from __future__ import annotations

import argparse
import base64
import hashlib
import hmac
import json
import time
from typing import Any

import httpx
from httpx import ConnectError


def build_payload(user_id: str, text: str | None, postback: str | None) -> dict[str, Any]:
    now_ms = int(time.time() * 1000)
    event: dict[str, Any] = {
        "replyToken": f"local_{now_ms}",
        "source": {"type": "user", "userId": user_id},
        "timestamp": now_ms,
        "mode": "active",
    }
    if postback is not None:
        event.update({"type": "postback", "postback": {"data": postback}})
    else:
        event.update({"type": "message", "message": {"id": str(now_ms), "type": "text", "text": text or ""}})
    return {"destination": "local", "events": [event]}


def sign_body(secret: str, body: bytes) -> str:
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).digest()
    return base64.b64encode(digest).decode("ascii")


def main() -> None:
    parser = argparse.ArgumentParser(description="Send a test LINE webhook POST")
    parser.add_argument("--url", default="http://127.0.0.1:8001/webhooks/line")
    parser.add_argument("--user", default="U_local_user")
    parser.add_argument("--text", default="register")
    parser.add_argument("--postback", default=None, help="Raw postback data; sends a postback event instead of text")
    parser.add_argument("--channel-secret", default="", help="LINE channel secret for signature")
    args = parser.parse_args()

    payload = build_payload(args.user, args.text, args.postback)
    body = json.dumps(payload).encode("utf-8")

    headers = {"Content-Type": "application/json"}
    if args.channel_secret:
        headers["X-Line-Signature"] = sign_body(args.channel_secret, body)

    try:
        resp = httpx.post(args.url, content=body, headers=headers, timeout=10.0)
    except ConnectError:
        print("Connection refused. Is the FastAPI server running?")
        print("Try: uvicorn bandroom.main:app --reload --port 8001")
        return

    print(resp.status_code)
    if resp.text:
        print(resp.text)


if __name__ == "__main__":
    main()
