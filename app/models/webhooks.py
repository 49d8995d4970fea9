from pydantic import BaseModel, Field


class ManualRetryRequest(BaseModel):
    """
    ManualRetryRequest asks for a dead-lettered webhook to be queued again.

    - dlq_id: The id of the dead-letter entry (``dlq_<retry_id>``).
    - expected_version: Optional version guard; the request fails with 409 when
      the entry was modified since it was read.
    """

    dlq_id: str = Field(min_length=1)
    expected_version: int | None = None

    class Config:
        extra = "forbid"


class ResolveRequest(BaseModel):
    """
    ResolveRequest closes a dead-letter entry without re-queueing it.

    - dlq_id: The id of the dead-letter entry.
    - resolution: Either ``ignored`` or ``manual_fix``.
    - notes: Free-form reviewer notes.
    - expected_version: Optional version guard, see ManualRetryRequest.
    """

    dlq_id: str = Field(min_length=1)
    resolution: str
    notes: str | None = None
    expected_version: int | None = None

    class Config:
        extra = "forbid"
