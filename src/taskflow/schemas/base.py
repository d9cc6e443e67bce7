"""Shared pydantic base for API schemas.

Python attributes stay snake_case; JSON on the wire is camelCase
(assignedToId, dueDate, createdAt). Input accepts either spelling.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class MessageResponse(CamelModel):
    message: str
