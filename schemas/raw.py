"""
Pydantic schema for raw time-series documents read from the source store
"""

from pydantic import BaseModel, Field, ValidationError
from typing import Optional, Dict, Any, Mapping, Union
import math
import numbers

from core.exceptions import MalformedDocumentError

# Document fields that identify a reading rather than carry sensor data
ID_FIELD = "_id"
DEVICE_FIELD = "uuid"
TIMESTAMP_FIELD = "unixtime"
IDENTITY_FIELDS = (ID_FIELD, DEVICE_FIELD, TIMESTAMP_FIELD)

# Documents are passed through untouched until the runner converts them
RawDocument = Dict[str, Any]


def parse_timestamp(document: Mapping[str, Any]) -> Union[int, float]:
    """
    Read the unix timestamp of a document.

    Fractional seconds are kept so the watermark can be rounded up past them.

    Raises:
        MalformedDocumentError: If the field is missing, not a number or not finite
    """
    if TIMESTAMP_FIELD not in document:
        raise MalformedDocumentError(
            "Document has no timestamp",
            context={"field": TIMESTAMP_FIELD, "value": None}
        )
    value = document[TIMESTAMP_FIELD]
    if isinstance(value, bool) or not isinstance(value, numbers.Real) or not math.isfinite(value):
        raise MalformedDocumentError(
            "Document timestamp is not a finite number",
            context={"field": TIMESTAMP_FIELD, "value": repr(value)}
        )
    return value


def timestamp_or_none(document: Mapping[str, Any]) -> Optional[Union[int, float]]:
    try:
        return parse_timestamp(document)
    except MalformedDocumentError:
        return None


class RawReading(BaseModel):
    """
    One schema-less document from the raw data source.

    Sensor channels vary per device, so everything that is not an identity
    field is kept in ``values`` in document order.
    """

    external_id: str = Field(..., min_length=1)
    device_address: Optional[str] = None
    unix_timestamp: Union[int, float]
    values: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_document(cls, document: Mapping[str, Any]) -> "RawReading":
        """
        Build a reading from a raw source document.

        Raises:
            MalformedDocumentError: If the id or timestamp is unusable
        """
        unix_timestamp = parse_timestamp(document)
        if document.get(ID_FIELD) is None:
            raise MalformedDocumentError(
                "Document has no id",
                context={"field": ID_FIELD, "value": None}
            )
        device_address = document.get(DEVICE_FIELD)
        try:
            return cls(
                external_id=str(document[ID_FIELD]),
                device_address=str(device_address) if device_address is not None else None,
                unix_timestamp=unix_timestamp,
                values={
                    key: value for key, value in document.items()
                    if key not in IDENTITY_FIELDS
                },
            )
        except ValidationError as e:
            raise MalformedDocumentError(
                "Document failed validation",
                context={"field": ID_FIELD, "value": repr(document.get(ID_FIELD))},
                original_exception=e
            )

    class Config:
        frozen = True
