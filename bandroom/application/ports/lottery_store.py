from __future__ import annotations

from abc import ABC, abstractmethod

from bandroom.domain.entities.lottery import LotteryResult


class LotteryResultStorePort(ABC):
    @abstractmethod
    def get_result(self, target_date: str) -> LotteryResult | None:
        raise NotImplementedError

    @abstractmethod
    def set_result(self, result: LotteryResult) -> None:
        raise NotImplementedError

    @abstractmethod
    def delete_result(self, target_date: str) -> bool:
        raise NotImplementedError
