"""Shared pydantic configuration for LINE payload models."""
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from typing import Any, Dict


class LineModel(BaseModel):
    """Base model using LINE's camelCase field names on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_payload(self) -> Dict[str, Any]:
        """Serialize to the JSON shape LINE expects."""
        return self.model_dump(by_alias=True, exclude_none=True)
