"""SQLModel table holding small JSON documents under well-known keys."""

from datetime import datetime

from sqlmodel import Field, SQLModel

from datetime_utils import utc_now


class LocalValue(SQLModel, table=True):
    key: str = Field(primary_key=True)
    value: str
    updated_at: datetime = Field(default_factory=utc_now)


__all__ = ["LocalValue"]
