"""
Shared pieces for MongoDB document models.

PyObjectId accepts an ObjectId or its 24-hex string and serialises to a
string in JSON. MongoBaseModel maps ``_id`` to ``id`` and converts to and
from raw pymongo documents. pymongo returns naive datetimes (UTC by
convention); they are made timezone-aware on load so comparisons with
``utcnow()`` work.
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any, Optional

from bson import ObjectId
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PlainSerializer,
    PlainValidator,
    model_validator,
)

from shared.datetime_utils import ensure_utc


def to_object_id(value: Any) -> ObjectId:
    if isinstance(value, ObjectId):
        return value
    if isinstance(value, str) and ObjectId.is_valid(value):
        return ObjectId(value)
    raise ValueError(f"Invalid ObjectId: {value!r}")


PyObjectId = Annotated[
    ObjectId,
    PlainValidator(to_object_id),
    PlainSerializer(str, return_type=str, when_used="json"),
]


class MongoBaseModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, arbitrary_types_allowed=True)

    id: Optional[PyObjectId] = Field(default=None, alias="_id")

    @model_validator(mode="after")
    def _aware_datetimes(self) -> "MongoBaseModel":
        for name in type(self).model_fields:
            value = getattr(self, name)
            if isinstance(value, datetime) and value.tzinfo is None:
                setattr(self, name, ensure_utc(value))
        return self

    def to_mongo(self) -> dict:
        """Document for insert/update; ``_id`` is left out until assigned."""
        exclude = {"id"} if self.id is None else None
        return self.model_dump(by_alias=True, exclude=exclude)

    @classmethod
    def from_mongo(cls, data: Optional[dict]) -> Optional["MongoBaseModel"]:
        return None if data is None else cls.model_validate(data)
