# inkgest/schemas/base.py

from typing import Any, Optional

from pydantic import BaseModel
from pydantic.alias_generators import to_camel
from pydantic.config import ConfigDict


class CamelModel(BaseModel):
    """JSON in camelCase, Python in snake_case."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


def envelope(data: Any = None, *, success: bool = True, error: Optional[str] = None) -> dict:
    """Standard {success, data, error} body shared by every endpoint."""
    if isinstance(data, BaseModel):
        data = data.model_dump(mode="json", by_alias=True)
    elif isinstance(data, list):
        data = [d.model_dump(mode="json", by_alias=True) if isinstance(d, BaseModel) else d for d in data]
    body: dict = {"success": success}
    if data is not None:
        body["data"] = data
    if error is not None:
        body["error"] = error
    return body
