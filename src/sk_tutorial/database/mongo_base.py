from __future__ import annotations

from contextlib import contextmanager
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Iterator, Optional

from bson import Decimal128, ObjectId
from bson.errors import InvalidId
from pymongo.errors import BulkWriteError, PyMongoError

from ..core.exceptions import UpstreamError, ValidationError


@contextmanager
def storage_errors(action: str) -> Iterator[None]:
    """Re-raise driver failures as UpstreamError, keeping the driver message."""
    try:
        yield
    except BulkWriteError as e:
        details = e.details or {}
        raise UpstreamError(
            f"{action} failed after {details.get('nModified', 0)} updates / "
            f"{details.get('nInserted', 0) + details.get('nUpserted', 0)} inserts: {e}"
        ) from e
    except PyMongoError as e:
        raise UpstreamError(f"{action} failed: {e}") from e


def to_object_id(value: Any, field_name: str = "id") -> ObjectId:
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        raise ValidationError(f"Invalid {field_name} format")


def try_object_id(value: Any) -> Optional[ObjectId]:
    if isinstance(value, ObjectId):
        return value
    if isinstance(value, str) and ObjectId.is_valid(value):
        return ObjectId(value)
    return None


def to_decimal128(value: Optional[Decimal]) -> Optional[Decimal128]:
    return Decimal128(value) if value is not None else None


def from_decimal(value: Any) -> Optional[Decimal]:
    if value is None:
        return None
    if isinstance(value, Decimal128):
        return value.to_decimal()
    return Decimal(str(value))


def as_date(value: Any) -> Optional[date]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return datetime.fromisoformat(str(value).replace("Z", "+00:00")).date()
