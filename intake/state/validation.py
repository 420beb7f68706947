"""
Field validation: normalize one raw value against a declared field type.
A value that fails is discarded (None) so the question gets asked again.
"""

import logging
import re
from datetime import date, datetime, timedelta
from typing import Any

from intake.state.schema_registry import FieldSpec, FieldType

logger = logging.getLogger(__name__)

MAX_TEXT_LENGTH = 1000

FAKE_PHONES = {"0000000000", "1111111111", "2222222222", "1234567890"}

US_STATES = {
    "AL": "Alabama", "AK": "Alaska", "AZ": "Arizona", "AR": "Arkansas", "CA": "California",
    "CO": "Colorado", "CT": "Connecticut", "DE": "Delaware", "DC": "District of Columbia",
    "FL": "Florida", "GA": "Georgia", "HI": "Hawaii", "ID": "Idaho", "IL": "Illinois",
    "IN": "Indiana", "IA": "Iowa", "KS": "Kansas", "KY": "Kentucky", "LA": "Louisiana",
    "ME": "Maine", "MD": "Maryland", "MA": "Massachusetts", "MI": "Michigan", "MN": "Minnesota",
    "MS": "Mississippi", "MO": "Missouri", "MT": "Montana", "NE": "Nebraska", "NV": "Nevada",
    "NH": "New Hampshire", "NJ": "New Jersey", "NM": "New Mexico", "NY": "New York",
    "NC": "North Carolina", "ND": "North Dakota", "OH": "Ohio", "OK": "Oklahoma", "OR": "Oregon",
    "PA": "Pennsylvania", "RI": "Rhode Island", "SC": "South Carolina", "SD": "South Dakota",
    "TN": "Tennessee", "TX": "Texas", "UT": "Utah", "VT": "Vermont", "VA": "Virginia",
    "WA": "Washington", "WV": "West Virginia", "WI": "Wisconsin", "WY": "Wyoming",
}
_STATE_BY_NAME = {name.lower(): code for code, name in US_STATES.items()}

YES_WORDS = {"yes", "y", "yeah", "yea", "yep", "yup", "sure", "correct", "true", "affirmative", "absolutely", "definitely", "i do", "i have", "i did"}
NO_WORDS = {"no", "n", "nope", "nah", "false", "never", "negative", "none", "not"}
# hedged replies leave the field unanswered
UNSURE_PATTERN = re.compile(
    r"\b(?:not sure|unsure|not certain|don'?t know|do not know|dunno|idk|no idea|can'?t remember|cannot remember|don'?t remember|maybe|possibly)\b"
)

EMAIL_RE = re.compile(r"[^\s@<>(),;:]+@[^\s@<>(),;:]+\.[A-Za-z]{2,}")
PHONE_RE = re.compile(r"(?:\+?1[\s.-]?)?\(?\d{3}\)?[\s.-]?\d{3}[\s.-]?\d{4}")
ZIP_RE = re.compile(r"^\d{5}(?:-\d{4})?$")
ZIP_SEARCH_RE = re.compile(r"\b\d{5}(?:-\d{4})?\b")
NUMBER_RE = re.compile(r"\$?\s?\d[\d,]*(?:\.\d+)?\s?[kK]?")

# Date phrases we can pick out of a longer reply
_DATE_SEARCH_PATTERNS = [
    re.compile(r"\b(today|yesterday|last night|last week|last month|last year)\b", re.I),
    re.compile(r"\b(?:a|an|one|\d+)\s+(?:day|week|month|year)s?\s+ago\b", re.I),
    re.compile(r"\b\d{4}-\d{1,2}-\d{1,2}\b"),
    re.compile(r"\b\d{1,2}[/-]\d{1,2}[/-]\d{2,4}\b"),
    re.compile(
        r"\b(?:jan|feb|mar|apr|may|jun|jul|aug|sep|sept|oct|nov|dec)[a-z]*\.?\s+\d{1,2}(?:st|nd|rd|th)?(?:,?\s+\d{4})?\b",
        re.I,
    ),
]
_DATE_FORMATS = (
    "%Y-%m-%d",
    "%m/%d/%Y",
    "%m/%d/%y",
    "%m-%d-%Y",
    "%m-%d-%y",
    "%B %d %Y",
    "%b %d %Y",
    "%d %B %Y",
    "%d %b %Y",
)
_DATE_FORMATS_NO_YEAR = ("%B %d", "%b %d")
_NUMBER_WORDS = {"a": 1, "an": 1, "one": 1}
EARLIEST_DATE = date(1900, 1, 1)

FORMAT_HINTS = {
    FieldType.EMAIL: "Please enter an email address like name@example.com.",
    FieldType.PHONE: "Please enter a 10-digit phone number, like (704) 555-0123.",
    FieldType.ZIP: "Please enter a 5-digit ZIP code.",
    FieldType.DATE: "A date like 03/15/2024 or something like \"two weeks ago\" works.",
    FieldType.BOOLEAN: "A simple yes or no is fine.",
    FieldType.NUMBER: "A number is fine, for example 2500.",
    FieldType.STATE: "Please enter a US state, for example NC or North Carolina.",
}


class FieldValidationError(ValueError):
    def __init__(self, field_name: str, message: str):
        super().__init__(f"{field_name}: {message}")
        self.field_name = field_name


def format_hint(spec: FieldSpec) -> str | None:
    if spec.type == FieldType.ENUM and spec.allowed_values:
        return "Please choose one of: " + ", ".join(spec.allowed_values) + "."
    return FORMAT_HINTS.get(spec.type)


def _validate_text(spec: FieldSpec, raw: Any) -> str:
    text = " ".join(str(raw).split())
    if not text:
        raise FieldValidationError(spec.name, "empty")
    if len(text) > MAX_TEXT_LENGTH:
        raise FieldValidationError(spec.name, f"longer than {MAX_TEXT_LENGTH} characters")
    return text


def _validate_email(spec: FieldSpec, raw: Any) -> str:
    email = str(raw).strip().lower()
    if not EMAIL_RE.fullmatch(email):
        raise FieldValidationError(spec.name, "not an email address")
    return email


def _validate_phone(spec: FieldSpec, raw: Any) -> str:
    digits = re.sub(r"\D", "", str(raw))
    if len(digits) == 11 and digits.startswith("1"):
        digits = digits[1:]
    if len(digits) != 10:
        raise FieldValidationError(spec.name, "phone numbers need 10 digits")
    if digits in FAKE_PHONES:
        raise FieldValidationError(spec.name, "placeholder phone number")
    pattern = spec.format or "(XXX) XXX-XXXX"
    if pattern.count("X") != 10:
        pattern = "(XXX) XXX-XXXX"
    it = iter(digits)
    return "".join(next(it) if ch == "X" else ch for ch in pattern)


def _validate_zip(spec: FieldSpec, raw: Any) -> str:
    if isinstance(raw, bool):
        raise FieldValidationError(spec.name, "not a US ZIP code")
    zip_code = str(raw).strip()
    if isinstance(raw, int):
        zip_code = f"{raw:05d}"
    if not ZIP_RE.match(zip_code):
        raise FieldValidationError(spec.name, "not a US ZIP code")
    return zip_code


def _validate_number(spec: FieldSpec, raw: Any) -> int | float:
    if isinstance(raw, bool):
        raise FieldValidationError(spec.name, "not a number")
    if isinstance(raw, (int, float)):
        num = float(raw)
    else:
        s = str(raw).strip().replace("$", "").replace(",", "").replace(" ", "")
        multiplier = 1
        if s[-1:] in ("k", "K"):
            multiplier, s = 1000, s[:-1]
        try:
            num = float(s) * multiplier
        except ValueError:
            raise FieldValidationError(spec.name, "not a number") from None
    if num < 0:
        raise FieldValidationError(spec.name, "negative")
    return int(num) if num.is_integer() else num


def _months_ago(d: date, n: int) -> date:
    month_index = d.year * 12 + (d.month - 1) - n
    year, month = divmod(month_index, 12)
    month += 1
    for day in (d.day, 30, 29, 28):
        try:
            return date(year, month, day)
        except ValueError:
            continue
    return date(year, month, 28)


def _parse_relative(text: str, today: date) -> date | None:
    if text in ("today", "this morning", "tonight", "earlier today"):
        return today
    if text in ("yesterday", "last night"):
        return today - timedelta(days=1)
    if text == "last week":
        return today - timedelta(weeks=1)
    if text == "last month":
        return _months_ago(today, 1)
    if text == "last year":
        return _months_ago(today, 12)
    m = re.fullmatch(r"(a|an|one|\d+)\s+(day|week|month|year)s?\s+ago", text)
    if not m:
        return None
    n = _NUMBER_WORDS.get(m.group(1)) or int(m.group(1))
    unit = m.group(2)
    if unit == "day":
        return today - timedelta(days=n)
    if unit == "week":
        return today - timedelta(weeks=n)
    if unit == "month":
        return _months_ago(today, n)
    return _months_ago(today, 12 * n)


def _parse_absolute(text: str, today: date) -> date | None:
    cleaned = re.sub(r"(\d)(st|nd|rd|th)\b", r"\1", text)
    cleaned = cleaned.replace(",", " ").replace(".", " ")
    cleaned = " ".join(cleaned.split())
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(cleaned, fmt).date()
        except ValueError:
            continue
    for fmt in _DATE_FORMATS_NO_YEAR:
        try:
            parsed = datetime.strptime(f"{cleaned} {today.year}", f"{fmt} %Y").date()
        except ValueError:
            continue
        if parsed > today:
            parsed = parsed.replace(year=today.year - 1)
        return parsed
    return None


def parse_date(raw: Any, today: date | None = None) -> date | None:
    today = today or date.today()
    if isinstance(raw, date):
        return raw
    text = " ".join(str(raw).strip().lower().split())
    if not text:
        return None
    try:
        parsed = _parse_relative(text, today) or _parse_absolute(text, today)
    except (OverflowError, ValueError):
        logger.debug("Date out of range: %r", text)
        return None
    if parsed is not None and parsed < EARLIEST_DATE:
        return None
    return parsed


def _strftime_pattern(fmt: str | None) -> str:
    pattern = fmt or "YYYY-MM-DD"
    return pattern.replace("YYYY", "%Y").replace("MM", "%m").replace("DD", "%d")


def _validate_date(spec: FieldSpec, raw: Any, today: date | None = None) -> str:
    today = today or date.today()
    parsed = parse_date(raw, today)
    if parsed is None:
        raise FieldValidationError(spec.name, "not a recognizable date")
    if parsed > today:
        raise FieldValidationError(spec.name, "date is in the future")
    return parsed.strftime(_strftime_pattern(spec.format))


def _validate_boolean(spec: FieldSpec, raw: Any) -> str:
    if isinstance(raw, bool):
        return "yes" if raw else "no"
    text = str(raw).strip().lower().replace("\u2019", "'")
    tokens = re.findall(r"[a-z']+", text)
    if not tokens:
        raise FieldValidationError(spec.name, "not a yes/no answer")
    if UNSURE_PATTERN.search(text):
        raise FieldValidationError(spec.name, "visitor is unsure")
    phrase = " ".join(tokens)
    if phrase in YES_WORDS or tokens[0] in YES_WORDS:
        return "yes"
    if phrase in NO_WORDS or tokens[0] in NO_WORDS:
        return "no"
    if any(t in NO_WORDS or t.endswith("n't") for t in tokens):
        return "no"
    if any(t in YES_WORDS for t in tokens) or phrase.startswith(("i do", "i have", "i did")):
        return "yes"
    raise FieldValidationError(spec.name, "not a yes/no answer")


def _enum_key(value: str) -> str:
    return re.sub(r"[^a-z0-9]", "", value.lower())


def _validate_enum(spec: FieldSpec, raw: Any) -> str:
    allowed = spec.allowed_values or []
    key = _enum_key(str(raw))
    if not key:
        raise FieldValidationError(spec.name, "empty")
    for value in allowed:
        if _enum_key(value) == key:
            return value
    matches = [v for v in allowed if _enum_key(v) in key]
    if len(matches) == 1:
        return matches[0]
    raise FieldValidationError(spec.name, f"must be one of {allowed}")


def _validate_state(spec: FieldSpec, raw: Any) -> str:
    text = " ".join(str(raw).strip().split())
    if text.upper() in US_STATES:
        return text.upper()
    code = _STATE_BY_NAME.get(text.lower())
    if code:
        return code
    raise FieldValidationError(spec.name, "not a US state")


_VALIDATORS = {
    FieldType.TEXT: _validate_text,
    FieldType.EMAIL: _validate_email,
    FieldType.PHONE: _validate_phone,
    FieldType.ZIP: _validate_zip,
    FieldType.NUMBER: _validate_number,
    FieldType.BOOLEAN: _validate_boolean,
    FieldType.ENUM: _validate_enum,
    FieldType.STATE: _validate_state,
}


def normalize(spec: FieldSpec, raw: Any, *, today: date | None = None) -> Any:
    """Normalized value for ``raw``. Raises FieldValidationError."""
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        raise FieldValidationError(spec.name, "empty")
    if spec.type == FieldType.DATE:
        return _validate_date(spec, raw, today)
    return _VALIDATORS[spec.type](spec, raw)


def validate_field(spec: FieldSpec, raw: Any, *, today: date | None = None) -> Any | None:
    """Normalized value, or None when ``raw`` is missing or fails the field's rule."""
    if raw is None:
        return None
    try:
        return normalize(spec, raw, today=today)
    except FieldValidationError as e:
        logger.debug("Discarded value for %s: %s", spec.name, e)
        return None


def _candidates(spec: FieldSpec, message: str) -> list[str]:
    text = message.strip()
    if spec.type == FieldType.EMAIL:
        return EMAIL_RE.findall(text)
    if spec.type == FieldType.PHONE:
        return PHONE_RE.findall(text) or [text]
    if spec.type == FieldType.ZIP:
        return ZIP_SEARCH_RE.findall(text)
    if spec.type == FieldType.NUMBER:
        return [m.strip() for m in NUMBER_RE.findall(text)]
    if spec.type == FieldType.DATE:
        found = [m.group(0) for p in _DATE_SEARCH_PATTERNS for m in p.finditer(text)]
        return [text] + found
    if spec.type == FieldType.STATE:
        stripped = text.rstrip(".!")
        names = sorted(
            (name for name in _STATE_BY_NAME if re.search(rf"\b{name}\b", stripped.lower())),
            key=len,
            reverse=True,
        )
        codes = re.findall(r"\b[A-Z]{2}\b", stripped)
        return [stripped] + names + codes
    return [text]


def parse_direct_answer(
    spec: FieldSpec,
    message: str,
    *,
    accept_free_text: bool = False,
    today: date | None = None,
) -> Any | None:
    """
    Read ``message`` as a direct answer to ``spec``. Structured types pick a
    matching fragment out of the reply; free text is taken only when
    ``accept_free_text`` is set.
    """
    if not message or not message.strip():
        return None
    if spec.type == FieldType.TEXT and not accept_free_text:
        return None
    for candidate in _candidates(spec, message):
        value = validate_field(spec, candidate, today=today)
        if value is not None:
            return value
    return None
