from datetime import datetime, timezone

from dateutil import parser as date_parser
from flask import jsonify, request
from flask_login import current_user
from sqlalchemy import or_

from .errors import ApiError, ValidationError, not_found
from .models import db, Case


def api_response(data=None, message=None, status=200, **extra):
    """Build the ``{success, data, ...}`` envelope used by every endpoint."""
    payload = {'success': True}
    if data is not None:
        payload['data'] = data
    payload.update(extra)
    if message:
        payload['message'] = message
    return jsonify(payload), status


def get_json_body():
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ApiError('Request body must be a JSON object', 400, 'INVALID_BODY')
    return data


def parse_datetime(value, field='date'):
    """Parse an ISO-8601 value into a naive UTC datetime."""
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = date_parser.isoparse(str(value))
        except (ValueError, OverflowError):
            raise ApiError(f"Invalid date for {field}", 400, 'INVALID_DATE')
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def validate_choice(value, choices, field):
    if value is None:
        return None
    if value not in choices:
        raise ValidationError(
            f"Invalid value for {field}",
            details={'field': field, 'allowed': list(choices)},
        )
    return value


def parse_int(value, field='id'):
    if value is None or value == '':
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ApiError(f"Invalid {field}", 400, 'INVALID_ID')


def parse_bool(value):
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ('1', 'true', 'yes', 'on')


def owned_query(model):
    return model.query.filter(model.user_id == current_user.id)


def get_owned_or_404(model, object_id, code, message):
    obj = db.session.get(model, object_id)
    if obj is None or obj.user_id != current_user.id:
        raise not_found(code, message)
    return obj


def resolve_case_id(value):
    """Validate an optional case reference; returns the id or None."""
    case_id = parse_int(value, 'case_id')
    if case_id is None:
        return None
    get_owned_or_404(Case, case_id, 'CASE_NOT_FOUND', 'Case not found')
    return case_id


def apply_equal_filters(query, model, args, fields):
    """Exact-match filters; the value 'all' disables a filter."""
    for field in fields:
        value = args.get(field)
        if value and value != 'all':
            column = getattr(model, field)
            if field.endswith('_id'):
                value = parse_int(value, field)
            query = query.filter(column == value)
    return query


def apply_date_range(query, column, args, start_key='date_from', end_key='date_to'):
    date_from = parse_datetime(args.get(start_key), start_key)
    date_to = parse_datetime(args.get(end_key), end_key)
    if date_from:
        query = query.filter(column >= date_from)
    if date_to:
        query = query.filter(column <= date_to)
    return query


def escape_like(term):
    return term.replace('\\', '\\\\').replace('%', '\\%').replace('_', '\\_')


def apply_search(query, term, columns):
    """Case-insensitive substring match across the given columns."""
    if not term:
        return query
    like = f"%{escape_like(term)}%"
    return query.filter(or_(*[db.cast(col, db.String).ilike(like, escape='\\') for col in columns]))


def text_matches(term, values):
    """True when ``term`` occurs in any of ``values``, ignoring case."""
    needle = term.casefold()
    return any(needle in str(v).casefold() for v in values if v)


def parse_string_list(value, field):
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(v, (str, int, float)) for v in value):
        raise ValidationError(f"{field} must be a list of strings")
    return [str(v) for v in value]


def parse_object(value, field):
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValidationError(f"{field} must be an object")
    return dict(value)


def apply_sort(query, model, sort, default_sort):
    """Order by ``sort`` ('field' or '-field'); unknown fields fall back to the default."""
    sort = sort or default_sort
    field = sort.lstrip('-')
    column = model.__table__.columns.get(field)
    if column is None:
        sort = default_sort
        field = sort.lstrip('-')
        column = model.__table__.columns[field]
    return query.order_by(column.desc() if sort.startswith('-') else column.asc(), model.id.desc())


def apply_limit(query, limit):
    if limit in (None, ''):
        return query
    try:
        limit = int(limit)
    except (TypeError, ValueError):
        raise ApiError('Invalid limit', 400, 'INVALID_LIMIT')
    if limit < 0:
        raise ApiError('Invalid limit', 400, 'INVALID_LIMIT')
    return query.limit(limit)


def require_fields(data, fields, code='MISSING_REQUIRED_FIELDS', message=None):
    missing = [f for f in fields if data.get(f) in (None, '')]
    if missing:
        raise ApiError(
            message or f"Missing required fields: {', '.join(missing)}",
            400,
            code,
            details={'missing': missing},
        )


def count_by(query, column):
    rows = query.with_entities(column, db.func.count()).group_by(column).all()
    return {key: count for key, count in rows if key is not None}
