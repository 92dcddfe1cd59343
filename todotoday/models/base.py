"""
Shared model configuration.

Python attributes are snake_case; the persisted JSON uses camelCase names.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model that reads either spelling and writes camelCase."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

    def to_json_dict(self) -> dict:
        """Dump to a JSON-compatible dict using the persisted field names."""
        return self.model_dump(mode="json", by_alias=True)
