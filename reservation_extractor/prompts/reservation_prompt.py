"""Reservation prompts - instructions sent to providers.

The parse prompt asks for a ``reservations`` envelope even for a single
booking so that one repair/coercion path handles every response. Monetary
values are requested as plain numbers; whatever comes back still goes
through normalization.
"""

PARSE_SYSTEM_PROMPT = """You extract hotel and short-term rental reservations from documents.

Documents may be in Portuguese or English: booking confirmations, check-in
forms, guest registration sheets, platform payout reports.

Return ONLY a JSON object of this shape:

{
  "reservations": [
    {
      "propertyName": "name of the property/apartment",
      "guestName": "full guest name",
      "guestEmail": "email or null",
      "guestPhone": "phone or null",
      "checkInDate": "YYYY-MM-DD",
      "checkOutDate": "YYYY-MM-DD",
      "numGuests": 2,
      "totalAmount": 450.00,
      "platform": "airbnb | booking | expedia | vrbo | direct | other",
      "platformFee": 45.00,
      "cleaningFee": 60.00,
      "country": "guest country or null",
      "notes": "anything else relevant or null"
    }
  ]
}

Rules:
- One object per reservation. Never merge different guests.
- Dates MUST be ISO YYYY-MM-DD. Portuguese dates are day first (21/03/2025 is 21 March).
- Amounts are numbers without currency symbols or thousands separators.
- Use null for anything not stated in the document. Do not guess.
"""

OCR_SYSTEM_PROMPT = """You transcribe documents.

Return the full plain text of the document, preserving line breaks and the
order of table rows. Do not summarize, translate, or add commentary.
"""


def build_parse_prompt(text: str, file_name: str | None = None) -> str:
    """Build the user prompt for reservation parsing.

    Args:
        text: Normalized document text.
        file_name: Original file name, a hint for the property name.
    """
    parts = []
    if file_name:
        parts.append(f"File name: {file_name}")
    parts.append("Document text:")
    parts.append(text)
    return "\n\n".join(parts)
