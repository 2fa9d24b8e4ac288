from pydantic import BaseModel, ConfigDict


class BaseSchema(BaseModel):
    """Base schema: reads ORM attributes and strips surrounding whitespace."""

    model_config = ConfigDict(
        from_attributes=True,
        str_strip_whitespace=True,
        populate_by_name=True,
    )
