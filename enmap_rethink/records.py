from __future__ import annotations

from typing import Any, Literal, Mapping, Union

from pydantic import BaseModel, StrictFloat, StrictInt, StrictStr, ValidationError

from .codec import decode_value, encode_value
from .errors import DecodeError


class RowRecord(BaseModel):
    """
    Mirrors the stored row shape exactly:
      { "id": <key>, "data": <primitive or JSON text> }
    """

    id: Union[StrictStr, StrictInt, StrictFloat]
    data: Any = None

    @classmethod
    def from_row_doc(cls, doc: Mapping[str, Any]) -> "RowRecord":
        try:
            return cls.model_validate(doc)
        except ValidationError as e:
            key = doc.get("id") if isinstance(doc, Mapping) else None
            raise DecodeError("stored row has an unexpected shape", {"key": key}) from e

    @classmethod
    def from_entry(cls, key: Any, value: Any) -> "RowRecord":
        return cls(id=key, data=encode_value(value))

    def to_row_doc(self) -> dict[str, Any]:
        return {"id": self.id, "data": self.data}

    def decoded(self) -> Any:
        return decode_value(self.data, key=self.id)


class ProviderFeatures(BaseModel):
    """Capabilities advertised to the map that owns this provider."""

    multi_process: bool = True
    complex_types: bool = True
    keys: Literal["single", "multiple"] = "multiple"
