"""Pydantic model for the read-only property catalog."""

from pydantic import BaseModel, ConfigDict, Field


class PropertyCatalogEntry(BaseModel):
    """A known property. Owned by the property-management collaborator.

    Attributes:
        id: Canonical id.
        name: Canonical name.
        aliases: Alternate names the property appears under in documents.
    """

    model_config = ConfigDict(frozen=True)

    id: int | str
    name: str
    aliases: tuple[str, ...] = Field(default_factory=tuple)
