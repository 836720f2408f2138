from pydantic import BaseModel, Field


class LotteryRunResponseSchema(BaseModel):
    target_date: str
    processed: int
    slots: dict[str, list[str]] = Field(default_factory=dict)


class ReconcileResponseSchema(BaseModel):
    target_date: str
    updated: int


class NotifyResponseSchema(BaseModel):
    target_date: str
    status: str
    message: str
    content: str | None = None


class ClearLotteryResponseSchema(BaseModel):
    target_date: str
    bookings_cleared: int
    result_deleted: bool
