from __future__ import annotations

import logging

from bandroom.application.ports.notifier import NotifierPort


class MockNotifier(NotifierPort):
    def __init__(self) -> None:
        self.posts: list[str] = []
        self._logger = logging.getLogger(__name__)

    def post(self, content: str) -> None:
        self.posts.append(content)
        self._logger.info("Mock post to BAND", extra={"content": content})
