from datetime import date, datetime

AVAILABLE_DATE_FORMATS: dict[str, str] = {
    '%m/%d/%Y': 'MM/DD/YYYY',
    '%d/%m/%Y': 'DD/MM/YYYY',
    '%Y/%m/%d': 'YYYY/MM/DD',
    '%d.%m.%Y': 'DD.MM.YYYY',
    '%Y-%m-%d': 'YYYY-MM-DD',
}


def available_formats_core() -> dict[str, str]:
    return dict(AVAILABLE_DATE_FORMATS)


def parse_date_core(value: object, *, date_format: str) -> date | None:
    text = str(value or '').strip()
    if not text:
        return None
    candidates = [date_format, '%Y-%m-%d', *AVAILABLE_DATE_FORMATS]
    seen: set[str] = set()
    for fmt in candidates:
        if fmt in seen:
            continue
        seen.add(fmt)
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    try:
        return datetime.fromisoformat(text.replace('Z', '+00:00')).date()
    except ValueError:
        return None


def is_valid_date_core(value: object, *, date_format: str) -> bool:
    if not str(value or '').strip():
        return True
    return parse_date_core(value, date_format=date_format) is not None


def to_storage_core(value: object, *, date_format: str) -> str | None:
    parsed = parse_date_core(value, date_format=date_format)
    return parsed.isoformat() if parsed is not None else None


def format_dates_core(values: dict[str, object], fields: list[str], *, date_format: str) -> dict[str, object]:
    """Return a copy of ``values`` with stored ISO dates rewritten for display.

    Values that do not parse are left untouched so a re-rendered form shows
    exactly what the user typed.
    """
    formatted = dict(values)
    for field in fields:
        raw = formatted.get(field)
        if not str(raw or '').strip():
            formatted[field] = ''
            continue
        try:
            parsed = datetime.fromisoformat(str(raw).strip()).date()
        except ValueError:
            continue
        formatted[field] = parsed.strftime(date_format)
    return formatted
