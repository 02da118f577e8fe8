"""Request bodies accepted by the HTTP API."""

from pydantic import BaseModel, Field


class FieldPayload(BaseModel):
    """A field definition as submitted by a client."""

    title: str | None = None
    label: str | None = None
    type: str | None = None
    order: int | str | None = None
    multiline: bool | None = None
    point_color: str | None = None
    point_style: str | None = None
    values: list[str] | None = None
    minimum: float | None = None
    maximum: float | None = None

    def to_payload(self) -> dict[str, object]:
        """Return only the attributes the client provided."""
        return self.model_dump(exclude_none=True)


class EntryValuesPayload(BaseModel):
    """Field values for one day, keyed by field title.

    A null value clears the stored value for that field.
    """

    values: dict[str, str | bool | float | None] = Field(default_factory=dict)
