"""Pydantic models for reservation drafts.

A ReservationDraft is the canonical, unvalidated output of both extraction
paths. Dates are always ``datetime.date`` so they serialize as ISO 8601
calendar dates no matter how the source wrote them.
"""

from datetime import date
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, Field


class MatchTier(str, Enum):
    """Alias resolver tier that produced a property match, strongest first."""

    EXACT = "exact"
    ALIAS = "alias"
    NORMALIZED = "normalized"
    PARTIAL = "partial"


class PropertyReference(BaseModel):
    """Link between a draft and the property catalog.

    Attributes:
        property_id: Catalog id, None when unresolved.
        raw_name: Property text as found in the document or file name.
        matched_name: Canonical catalog name of the match.
        match_tier: Resolver tier that matched.
        confidence: Tier confidence (0.0 when unresolved).
    """

    property_id: int | str | None = None
    raw_name: str | None = None
    matched_name: str | None = None
    match_tier: MatchTier | None = None
    confidence: float = 0.0

    @property
    def is_resolved(self) -> bool:
        return self.property_id is not None


class ReservationDraft(BaseModel):
    """Best-effort reservation record produced mid-pipeline."""

    guest_name: str | None = None
    property_ref: PropertyReference = Field(default_factory=PropertyReference)
    check_in_date: date | None = None
    check_out_date: date | None = None
    num_guests: int | None = None
    nights: int | None = None
    total_amount: float | None = None
    platform_fee: float | None = None
    cleaning_fee: float | None = None
    platform: str | None = Field(default=None, description="airbnb, booking, expedia, vrbo, direct or other")
    country: str | None = None
    guest_email: str | None = None
    guest_phone: str | None = None
    notes: str | None = None
    source: Literal["tabular", "model"] = "model"

    def to_record(self) -> dict[str, Any]:
        """Flat camelCase record for API consumers."""
        return {
            "propertyId": self.property_ref.property_id,
            "propertyName": self.property_ref.matched_name or self.property_ref.raw_name,
            "guestName": self.guest_name,
            "checkInDate": self.check_in_date.isoformat() if self.check_in_date else None,
            "checkOutDate": self.check_out_date.isoformat() if self.check_out_date else None,
            "numGuests": self.num_guests,
            "nights": self.nights,
            "totalAmount": self.total_amount,
            "platformFee": self.platform_fee,
            "cleaningFee": self.cleaning_fee,
            "platform": self.platform,
            "country": self.country,
            "guestEmail": self.guest_email,
            "guestPhone": self.guest_phone,
            "notes": self.notes,
        }
