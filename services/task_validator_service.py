import math

import services.date_parser_service as date_parser_service

INTEGER_FIELDS = (
    'id',
    'project_id',
    'column_id',
    'owner_id',
    'creator_id',
    'score',
    'category_id',
    'swimlane_id',
)
NUMERIC_FIELDS = ('time_spent', 'time_estimated')
DATE_FIELDS = ('date_due', 'date_started')
TITLE_MAX_LENGTH = 200
COLOR_MAX_LENGTH = 50


def _is_blank(value: object) -> bool:
    return value is None or str(value).strip() == ''


def _is_integer(value: object) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    text = str(value).strip()
    if text.startswith('-'):
        text = text[1:]
    return text.isascii() and text.isdigit()


def _is_numeric(value: object) -> bool:
    try:
        number = float(str(value).strip())
    except ValueError:
        return False
    return math.isfinite(number)


def _add_error(errors: dict[str, list[str]], field: str, message: str) -> None:
    errors.setdefault(field, []).append(message)


def _require(values: dict[str, object], errors: dict[str, list[str]], field: str, message: str) -> None:
    if _is_blank(values.get(field)):
        _add_error(errors, field, message)


def _common_rules(values: dict[str, object], errors: dict[str, list[str]], *, date_format: str) -> None:
    for field in INTEGER_FIELDS:
        value = values.get(field)
        if not _is_blank(value) and not _is_integer(value):
            _add_error(errors, field, 'This value must be an integer')
    for field in NUMERIC_FIELDS:
        value = values.get(field)
        if not _is_blank(value) and not _is_numeric(value):
            _add_error(errors, field, 'This value must be numeric')
    for field in DATE_FIELDS:
        if not date_parser_service.is_valid_date_core(values.get(field), date_format=date_format):
            _add_error(errors, field, 'Invalid date')
    if len(str(values.get('title') or '')) > TITLE_MAX_LENGTH:
        _add_error(errors, 'title', f'The maximum length is {TITLE_MAX_LENGTH} characters')
    if len(str(values.get('color_id') or '')) > COLOR_MAX_LENGTH:
        _add_error(errors, 'color_id', f'The maximum length is {COLOR_MAX_LENGTH} characters')


def validate_creation_core(values: dict[str, object], *, date_format: str) -> tuple[bool, dict[str, list[str]]]:
    errors: dict[str, list[str]] = {}
    _require(values, errors, 'project_id', 'The project is required')
    _require(values, errors, 'title', 'The title is required')
    _common_rules(values, errors, date_format=date_format)
    return (not errors, errors)


def validate_modification_core(values: dict[str, object], *, date_format: str) -> tuple[bool, dict[str, list[str]]]:
    errors: dict[str, list[str]] = {}
    _require(values, errors, 'id', 'The id is required')
    _require(values, errors, 'title', 'The title is required')
    _common_rules(values, errors, date_format=date_format)
    return (not errors, errors)


def validate_time_modification_core(values: dict[str, object], *, date_format: str) -> tuple[bool, dict[str, list[str]]]:
    errors: dict[str, list[str]] = {}
    _require(values, errors, 'id', 'The id is required')
    _common_rules(values, errors, date_format=date_format)
    return (not errors, errors)


def validate_description_creation_core(values: dict[str, object]) -> tuple[bool, dict[str, list[str]]]:
    errors: dict[str, list[str]] = {}
    _require(values, errors, 'id', 'The id is required')
    _require(values, errors, 'description', 'The description is required')
    if not _is_blank(values.get('id')) and not _is_integer(values.get('id')):
        _add_error(errors, 'id', 'This value must be an integer')
    return (not errors, errors)


def validate_project_modification_core(
    values: dict[str, object],
    *,
    allowed_project_ids: set[int] | None = None,
) -> tuple[bool, dict[str, list[str]]]:
    errors: dict[str, list[str]] = {}
    _require(values, errors, 'id', 'The id is required')
    _require(values, errors, 'project_id', 'The project is required')
    for field in ('id', 'project_id'):
        value = values.get(field)
        if not _is_blank(value) and not _is_integer(value):
            _add_error(errors, field, 'This value must be an integer')
    if allowed_project_ids is not None and 'project_id' not in errors:
        if int(str(values.get('project_id')).strip()) not in allowed_project_ids:
            _add_error(errors, 'project_id', 'This project is not a valid destination')
    return (not errors, errors)
