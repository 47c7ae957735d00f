"""Value normalization for reservation fields.

Documents write the same value many ways: "21/03/2025", "21 de março de
2025", "March 21, 2025"; "€ 1.234,56"; "Booking.com". These helpers turn them
into canonical Python values. Every parser returns None for input it does not
recognize instead of guessing.
"""

import logging
import re
import unicodedata
from datetime import date, datetime
from typing import Any

from reservation_extractor.pydantic_models import PropertyReference, ReservationDraft

logger = logging.getLogger(__name__)


def fold_text(text: str) -> str:
    """Lowercase and strip diacritics ("Saída" -> "saida", "N.º" -> "n.o")."""
    decomposed = unicodedata.normalize("NFKD", text)
    stripped = "".join(c for c in decomposed if not unicodedata.combining(c))
    return stripped.casefold()


# =============================================================================
# Dates
# =============================================================================

_MONTHS: dict[str, int] = {
    # Portuguese
    "janeiro": 1, "fevereiro": 2, "marco": 3, "abril": 4, "maio": 5, "junho": 6,
    "julho": 7, "agosto": 8, "setembro": 9, "outubro": 10, "novembro": 11, "dezembro": 12,
    "jan": 1, "fev": 2, "mar": 3, "abr": 4, "mai": 5, "jun": 6,
    "jul": 7, "ago": 8, "set": 9, "out": 10, "nov": 11, "dez": 12,
    # English
    "january": 1, "february": 2, "march": 3, "april": 4, "may": 5, "june": 6,
    "july": 7, "august": 8, "september": 9, "october": 10, "november": 11, "december": 12,
    "feb": 2, "apr": 4, "aug": 8, "sep": 9, "sept": 9, "oct": 10, "dec": 12,
}

_ISO_DATE = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})(?:[t ].*)?$")
_DMY_DATE = re.compile(r"^(\d{1,2})[/.\-](\d{1,2})[/.\-](\d{2}|\d{4})$")
# "21 de março de 2025", "21 March 2025", "21-mar-2025"
_DAY_MONTH_YEAR = re.compile(r"^(\d{1,2})(?:st|nd|rd|th)?[\s.\-/]+(?:de\s+)?([a-z]+)\.?[\s.\-/,]+(?:de\s+)?(\d{4})$")
# "March 21, 2025", "Mar 21 2025"
_MONTH_DAY_YEAR = re.compile(r"^([a-z]+)\.?\s+(\d{1,2})(?:st|nd|rd|th)?,?\s+(\d{4})$")


def _safe_date(year: int, month: int, day: int) -> date | None:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def parse_date(value: Any) -> date | None:
    """Parse a date in any supported format.

    Supports ISO (YYYY-MM-DD, with optional time), DD/MM/YYYY with "/", "-"
    or "." separators, two-digit years (20xx), and Portuguese or English
    month names.

    Args:
        value: str, date, datetime or None.

    Returns:
        A date, or None when the value is empty or not a valid date.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = fold_text(str(value)).strip()
    if not text:
        return None

    if m := _ISO_DATE.match(text):
        return _safe_date(int(m.group(1)), int(m.group(2)), int(m.group(3)))

    if m := _DMY_DATE.match(text):
        year = int(m.group(3))
        if year < 100:
            year += 2000
        return _safe_date(year, int(m.group(2)), int(m.group(1)))

    if m := _DAY_MONTH_YEAR.match(text):
        month = _MONTHS.get(m.group(2))
        if month:
            return _safe_date(int(m.group(3)), month, int(m.group(1)))

    if m := _MONTH_DAY_YEAR.match(text):
        month = _MONTHS.get(m.group(1))
        if month:
            return _safe_date(int(m.group(3)), month, int(m.group(2)))

    return None


def parse_control_date(value: str) -> date | None:
    """Strict DD/MM/YYYY parse used by positional control sheets."""
    try:
        return datetime.strptime(value.strip(), "%d/%m/%Y").date()
    except ValueError:
        return None


# =============================================================================
# Numbers
# =============================================================================

_CURRENCY = re.compile(r"(?i)(€|\$|£|eur|euros?|usd|gbp|r\$)")
_NUMBER = re.compile(r"-?\d[\d.,\s]*")


def parse_amount(value: Any) -> float | None:
    """Parse a monetary amount, stripping currency symbols.

    Handles European ("1.234,56") and US ("1,234.56") grouping. A single
    separator followed by exactly three digits is a thousands separator
    ("1.200" -> 1200.0); otherwise it is the decimal point ("120,50").
    The sign is preserved so validation can reject negative amounts.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    text = _CURRENCY.sub("", str(value)).strip()
    m = _NUMBER.search(text)
    if not m:
        return None
    number = m.group(0).replace(" ", "").rstrip(".,")
    negative = number.startswith("-") or text.startswith("-")
    number = number.lstrip("-")
    if not number:
        return None

    last_comma = number.rfind(",")
    last_dot = number.rfind(".")
    if last_comma >= 0 and last_dot >= 0:
        decimal_sep = "," if last_comma > last_dot else "."
        group_sep = "." if decimal_sep == "," else ","
        number = number.replace(group_sep, "").replace(decimal_sep, ".")
    elif last_comma >= 0 or last_dot >= 0:
        sep = "," if last_comma >= 0 else "."
        parts = number.split(sep)
        if len(parts) > 2 or len(parts[-1]) == 3:
            number = number.replace(sep, "")
        else:
            number = number.replace(sep, ".")

    try:
        amount = float(number)
    except ValueError:
        return None
    return -amount if negative else amount


def parse_int(value: Any) -> int | None:
    """Parse a count such as a guest or night count ("4", "4 hóspedes", 4.0)."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    m = re.search(r"-?\d+", str(value))
    return int(m.group(0)) if m else None


# =============================================================================
# Platforms
# =============================================================================

PLATFORMS: tuple[str, ...] = ("airbnb", "booking", "expedia", "vrbo", "direct", "other")

_PLATFORM_MARKERS: tuple[tuple[str, str], ...] = (
    ("airbnb", "airbnb"),
    ("booking", "booking"),
    ("expedia", "expedia"),
    ("vrbo", "vrbo"),
    ("homeaway", "vrbo"),
    ("direct", "direct"),
    ("direto", "direct"),
    ("directo", "direct"),
    ("particular", "direct"),
)


def normalize_platform(value: Any) -> str | None:
    """Map a booking channel name to one of PLATFORMS."""
    if value is None:
        return None
    text = fold_text(str(value)).strip()
    if not text:
        return None
    for marker, platform in _PLATFORM_MARKERS:
        if marker in text:
            return platform
    return "other"


def clean_string(value: Any) -> str | None:
    if value is None:
        return None
    text = " ".join(str(value).split())
    return text or None


# =============================================================================
# Model records -> drafts
# =============================================================================

# Canonical key -> accepted spellings in model output. Keys are compared
# folded ("checkIn", "checkin" and "CHECKIN" are one spelling).
_RECORD_KEYS: dict[str, tuple[str, ...]] = {
    "guest_name": ("guestName", "guest_name", "guest", "name", "nome", "hospede", "cliente"),
    "property_name": (
        "propertyName", "property_name", "property", "accommodation", "alojamento", "propriedade",
    ),
    "check_in_date": (
        "checkInDate", "check_in_date", "checkIn", "check_in", "entrada", "arrival",
        "startDate", "dataEntrada", "dataInicio",
    ),
    "check_out_date": (
        "checkOutDate", "check_out_date", "checkOut", "check_out", "saida", "departure",
        "endDate", "dataSaida", "dataFim",
    ),
    "num_guests": (
        "numGuests", "num_guests", "guests", "guestCount", "numberOfGuests", "hospedes",
        "pax", "persons", "pessoas",
    ),
    "nights": ("nights", "numNights", "noites"),
    "total_amount": ("totalAmount", "total_amount", "total", "amount", "valor", "price", "preco"),
    "platform_fee": ("platformFee", "platform_fee", "commissionFee", "commission", "fee", "taxa", "comissao"),
    "cleaning_fee": ("cleaningFee", "cleaning_fee", "cleaning", "limpeza", "taxaLimpeza"),
    "platform": ("platform", "source", "channel", "plataforma", "origem", "canal"),
    "country": ("country", "guestCountry", "pais"),
    "guest_email": ("guestEmail", "guest_email", "email"),
    "guest_phone": ("guestPhone", "guest_phone", "phone", "telefone", "telemovel"),
    "notes": ("notes", "observations", "observacoes", "notas"),
}


def _fold_key(key: str) -> str:
    return fold_text(key).replace("_", "").replace("-", "").replace(" ", "")


_FOLDED_RECORD_KEYS: dict[str, tuple[str, ...]] = {
    canonical: tuple(dict.fromkeys(_fold_key(s) for s in spellings))
    for canonical, spellings in _RECORD_KEYS.items()
}


def _lookup(record: dict[str, Any], key: str) -> Any:
    for spelling in _FOLDED_RECORD_KEYS[key]:
        value = record.get(spelling)
        if value not in (None, ""):
            return value
    return None


def infer_platform(text: str | None) -> str | None:
    """Booking channel named in a document's text, for records that omit it."""
    if not text:
        return None
    folded = fold_text(text)
    if "airbnb" in folded:
        return "airbnb"
    if "booking.com" in folded:
        return "booking"
    return None


def draft_from_record(record: dict[str, Any]) -> tuple[ReservationDraft, list[str]]:
    """Build a model-path draft from one repaired record.

    Args:
        record: Record dict as returned by the provider. Keys may be
            camelCase, snake_case or Portuguese, in any case or accenting.

    Returns:
        (draft, unparseable_fields). A field whose value is present but
        cannot be normalized is left empty and reported.
    """
    unparseable: list[str] = []
    folded: dict[str, Any] = {}
    for raw_key, value in record.items():
        key = _fold_key(str(raw_key))
        if folded.get(key) in (None, ""):
            folded[key] = value

    def _parsed(key: str, parser) -> Any:
        raw = _lookup(folded, key)
        if raw is None:
            return None
        value = parser(raw)
        if value is None:
            unparseable.append(key)
        return value

    draft = ReservationDraft(
        guest_name=clean_string(_lookup(folded, "guest_name")),
        property_ref=PropertyReference(raw_name=clean_string(_lookup(folded, "property_name"))),
        check_in_date=_parsed("check_in_date", parse_date),
        check_out_date=_parsed("check_out_date", parse_date),
        num_guests=_parsed("num_guests", parse_int),
        nights=_parsed("nights", parse_int),
        total_amount=_parsed("total_amount", parse_amount),
        platform_fee=_parsed("platform_fee", parse_amount),
        cleaning_fee=_parsed("cleaning_fee", parse_amount),
        platform=normalize_platform(_lookup(folded, "platform")),
        country=clean_string(_lookup(folded, "country")),
        guest_email=clean_string(_lookup(folded, "guest_email")),
        guest_phone=clean_string(_lookup(folded, "guest_phone")),
        notes=clean_string(_lookup(folded, "notes")),
        source="model",
    )
    if unparseable:
        logger.debug(f"Unparseable fields in model record: {unparseable}")
    return draft, unparseable
