"""Tabular control-file parser.

Control files list many reservations for one property in a fixed layout,
so they can be parsed without a language model. Formats are data: each
ControlFileFormat names the header tokens that identify it and either a
positional row pattern or a table of field labels. Adding a format means
adding an entry to CONTROL_FILE_FORMATS.

The property is never read per row. It comes from the file name
(``Controlo_<Property>.pdf``) and is shared by every row of the document.
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import date
from typing import Callable

from reservation_extractor.core.normalization import (
    clean_string,
    fold_text,
    normalize_platform,
    parse_amount,
    parse_control_date,
    parse_date,
    parse_int,
)
from reservation_extractor.pydantic_models import FieldIssue, PropertyReference, ReservationDraft

logger = logging.getLogger(__name__)


# =============================================================================
# Format tables
# =============================================================================


@dataclass(frozen=True)
class RowPattern:
    """One reservation per line, fields in fixed positions.

    Attributes:
        pattern: Regex with one group per entry in ``fields``.
        fields: Draft field name for each group, in order.
        note_field: Field that receives a non-matching line directly
            after a matched row. None disables notes.
    """

    pattern: re.Pattern[str]
    fields: tuple[str, ...]
    note_field: str | None = "notes"


@dataclass(frozen=True)
class LabelPattern:
    """One ``Label: value`` line per field.

    Attributes:
        labels: Folded label text -> draft field name.
        record_start: Field whose repetition starts a new record.
    """

    labels: dict[str, str]
    record_start: str = "check_in_date"


@dataclass(frozen=True)
class ControlFileFormat:
    """A recognizable control-file layout."""

    name: str
    required_headers: tuple[str, ...]
    rows: RowPattern | None = None
    labels: LabelPattern | None = None
    date_parser: Callable[[str], date | None] = parse_date

    def applies_to(self, folded_text: str) -> bool:
        """True when every required header token appears in the text."""
        return all(token in folded_text for token in self.required_headers)


# Any token starting with a digit; unparseable dates are dropped per field
_DATE = r"(\d\S*)"
# A line opening with something shaped like a date belongs to a row, never a note
_DATE_LIKE = re.compile(r"^\d{1,4}[/.\-]\d{1,2}[/.\-]\d{1,4}(?:\s|$)")

POSITIONAL_CONTROL_SHEET = ControlFileFormat(
    name="positional_control_sheet",
    required_headers=("data entrada", "data saida", "n.o hospedes", "pais", "site"),
    rows=RowPattern(
        pattern=re.compile(
            rf"^{_DATE}\s+{_DATE}\s+(\d+)\s+(.+?)\s+(\d+)\s+(.+?)\s+(\S+)$"
        ),
        fields=("check_in_date", "check_out_date", "nights", "guest_name", "num_guests", "country", "platform"),
    ),
    date_parser=parse_control_date,
)

LABELLED_RECORD_SHEET = ControlFileFormat(
    name="labelled_record_sheet",
    required_headers=("data entrada", "data saida", "hospedes", "site"),
    labels=LabelPattern(
        labels={
            "data entrada": "check_in_date",
            "data de entrada": "check_in_date",
            "check-in": "check_in_date",
            "data saida": "check_out_date",
            "data de saida": "check_out_date",
            "check-out": "check_out_date",
            "nome": "guest_name",
            "nome do hospede": "guest_name",
            "hospede": "guest_name",
            "n.o hospedes": "num_guests",
            "n.o de hospedes": "num_guests",
            "no hospedes": "num_guests",
            "numero de hospedes": "num_guests",
            "hospedes": "num_guests",
            "noites": "nights",
            "site": "platform",
            "plataforma": "platform",
            "pais": "country",
            "telefone": "guest_phone",
            "telemovel": "guest_phone",
            "email": "guest_email",
            "valor": "total_amount",
            "valor total": "total_amount",
            "total": "total_amount",
            "observacoes": "notes",
            "notas": "notes",
            "propriedade": "property_name",
            "alojamento": "property_name",
        },
    ),
)

CONTROL_FILE_FORMATS: tuple[ControlFileFormat, ...] = (
    POSITIONAL_CONTROL_SHEET,
    LABELLED_RECORD_SHEET,
)
"""Formats in the order they are tried."""


# =============================================================================
# Results
# =============================================================================


@dataclass
class TabularRow:
    """A parsed row and the warnings raised while normalizing it."""

    draft: ReservationDraft
    warnings: list[FieldIssue] = field(default_factory=list)


@dataclass
class TabularParseResult:
    """Output of a successful tabular parse."""

    format_name: str
    property_name: str | None
    rows: list[TabularRow]

    @property
    def drafts(self) -> list[ReservationDraft]:
        return [row.draft for row in self.rows]


# =============================================================================
# Property from file name
# =============================================================================

_CONTROL_FILE_NAME = re.compile(r"Controlo_(.+?)(?:\s*-\s*Copy)?\.[A-Za-z0-9]+$", re.IGNORECASE)
_COPY_SUFFIX = re.compile(r"\s*-\s*Copy$", re.IGNORECASE)


def property_name_from_file_name(file_name: str | None) -> str | None:
    """Derive a property name hint from a file name.

    "Controlo_Sete Rios - Copy.pdf" -> "Sete Rios". Other names fall back to
    the file stem with underscores as spaces.
    """
    if not file_name:
        return None
    base = re.split(r"[\\/]", file_name)[-1]
    m = _CONTROL_FILE_NAME.search(base)
    if m:
        name = m.group(1)
    else:
        name = base.rsplit(".", 1)[0] if "." in base else base
        name = _COPY_SUFFIX.sub("", name)
    return clean_string(name.replace("_", " "))


# =============================================================================
# Parsing
# =============================================================================

_LABEL_LINE = re.compile(r"^\s*([^:\n]{1,40}?)\s*:\s*(.*)$")


def _fold_label(label: str) -> str:
    return " ".join(fold_text(label).strip(" .-*").split())


def _scan_rows(lines: list[str], rows: RowPattern, headers: tuple[str, ...]) -> list[dict[str, str]]:
    records: list[dict[str, str]] = []
    previous: dict[str, str] | None = None
    for line in lines:
        stripped = line.strip()
        if not stripped:
            previous = None
            continue
        m = rows.pattern.match(stripped)
        if m:
            previous = dict(zip(rows.fields, (g.strip() for g in m.groups())))
            records.append(previous)
            continue
        if _DATE_LIKE.match(stripped):
            logger.warning(f"Row does not fit the positional layout, skipped: {stripped!r}")
            previous = None
            continue
        folded = fold_text(stripped)
        # Repeated page headers are not notes
        is_header = sum(token in folded for token in headers) >= 2
        if previous is not None and rows.note_field and not is_header:
            previous[rows.note_field] = stripped
        previous = None
    return records


def _scan_labels(lines: list[str], labels: LabelPattern) -> list[dict[str, str]]:
    records: list[dict[str, str]] = []
    current: dict[str, str] = {}
    for line in lines:
        m = _LABEL_LINE.match(line)
        if not m:
            continue
        field_name = labels.labels.get(_fold_label(m.group(1)))
        value = m.group(2).strip()
        if not field_name or not value:
            continue
        if field_name == labels.record_start and field_name in current:
            records.append(current)
            current = {}
        current.setdefault(field_name, value)
    if current:
        records.append(current)
    return [r for r in records if "guest_name" in r or "check_in_date" in r]


def _build_row(raw: dict[str, str], fmt: ControlFileFormat, property_name: str | None) -> TabularRow:
    warnings: list[FieldIssue] = []

    dates: dict[str, date | None] = {}
    for key in ("check_in_date", "check_out_date"):
        value = raw.get(key)
        parsed = fmt.date_parser(value) if value else None
        if value and parsed is None:
            warnings.append(FieldIssue(field=key, message=f"Unparseable date '{value}' dropped"))
        dates[key] = parsed

    check_in, check_out = dates["check_in_date"], dates["check_out_date"]
    if check_in and check_out and check_out <= check_in:
        warnings.append(FieldIssue(
            field="check_out_date",
            message=f"Check-out {check_out.isoformat()} not after check-in {check_in.isoformat()}, dropped",
        ))
        check_out = None

    raw_property = property_name or clean_string(raw.get("property_name"))
    draft = ReservationDraft(
        guest_name=clean_string(raw.get("guest_name")),
        property_ref=PropertyReference(raw_name=raw_property),
        check_in_date=check_in,
        check_out_date=check_out,
        num_guests=parse_int(raw.get("num_guests")),
        nights=parse_int(raw.get("nights")),
        total_amount=parse_amount(raw.get("total_amount")),
        platform=normalize_platform(raw.get("platform")),
        country=clean_string(raw.get("country")),
        guest_phone=clean_string(raw.get("guest_phone")),
        guest_email=clean_string(raw.get("guest_email")),
        notes=clean_string(raw.get("notes")),
        source="tabular",
    )
    return TabularRow(draft=draft, warnings=warnings)


def detect_format(text: str) -> list[ControlFileFormat]:
    """Formats whose header tokens all appear in the text, in try order."""
    folded = fold_text(text)
    return [fmt for fmt in CONTROL_FILE_FORMATS if fmt.applies_to(folded)]


def parse_control_file(text: str, file_name: str | None = None) -> TabularParseResult | None:
    """Parse a control file into drafts.

    Args:
        text: Normalized document text.
        file_name: Original file name, used for the property name.

    Returns:
        TabularParseResult, or None when no format applies or the applicable
        formats yield no rows (the caller falls through to the model path).
    """
    candidates = detect_format(text)
    if not candidates:
        return None

    property_name = property_name_from_file_name(file_name)
    lines = text.split("\n")

    for fmt in candidates:
        if fmt.rows is not None:
            raw_rows = _scan_rows(lines, fmt.rows, fmt.required_headers)
        elif fmt.labels is not None:
            raw_rows = _scan_labels(lines, fmt.labels)
        else:
            raw_rows = []

        if not raw_rows:
            logger.debug(f"Format {fmt.name} applies but matched no rows")
            continue

        rows = [_build_row(raw, fmt, property_name) for raw in raw_rows]
        logger.info(f"Parsed {len(rows)} rows as {fmt.name} (property={property_name!r})")
        return TabularParseResult(format_name=fmt.name, property_name=property_name, rows=rows)

    return None
