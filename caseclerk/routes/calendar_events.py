from datetime import datetime, timedelta

from flask import Blueprint, Response, request
from flask_login import current_user, login_required

from ..errors import ApiError, ValidationError
from ..models import (
    db, CalendarEvent, EVENT_TYPES, EVENT_PRIORITIES, EVENT_STATUSES, REMINDER_METHODS,
)
from ..utils import (
    api_response, apply_date_range, apply_equal_filters, apply_limit, apply_sort, count_by,
    get_json_body, get_owned_or_404, owned_query, parse_datetime, parse_string_list, require_fields,
    resolve_case_id, validate_choice,
)

bp = Blueprint('calendar_events', __name__)

TEXT_FIELDS = ('title', 'description', 'location', 'notes')


def _get_event(event_id):
    return get_owned_or_404(CalendarEvent, event_id, 'EVENT_NOT_FOUND', 'Calendar event not found')


def _check_range(start_time, end_time):
    if start_time >= end_time:
        raise ApiError('Start time must be before end time', 400, 'INVALID_DATE_RANGE')


def _clean_reminders(reminders):
    cleaned = []
    for r in reminders or []:
        if not isinstance(r, dict):
            raise ValidationError('Each reminder must be an object')
        try:
            time_before = int(r.get('time_before') or 0)
        except (TypeError, ValueError):
            raise ValidationError('reminder time_before must be a number of minutes')
        cleaned.append({
            'time_before': time_before,
            'method': validate_choice(r.get('method') or 'notification', REMINDER_METHODS, 'reminder method'),
            'sent': bool(r.get('sent', False)),
        })
    return cleaned


def _clean_attendees(attendees):
    cleaned = []
    for a in attendees or []:
        if not isinstance(a, dict) or not a.get('name'):
            raise ValidationError('Each attendee needs a name')
        cleaned.append({
            'name': a.get('name'),
            'email': a.get('email'),
            'role': a.get('role') or 'other',
            'required': bool(a.get('required', False)),
        })
    return cleaned


def _apply_fields(event, data):
    for field in TEXT_FIELDS:
        if field in data:
            setattr(event, field, data.get(field))
    for field in ('start_time', 'end_time'):
        if field in data:
            setattr(event, field, parse_datetime(data.get(field), field))
    if 'case_id' in data:
        event.case_id = resolve_case_id(data.get('case_id'))
    if 'event_type' in data:
        event.event_type = validate_choice(data['event_type'], EVENT_TYPES, 'event_type')
    if 'priority' in data:
        event.priority = validate_choice(data['priority'], EVENT_PRIORITIES, 'priority')
    if 'status' in data:
        event.status = validate_choice(data['status'], EVENT_STATUSES, 'status')
    if 'attendees' in data:
        event.attendees = _clean_attendees(data.get('attendees'))
    if 'reminders' in data:
        event.reminders = _clean_reminders(data.get('reminders'))
    if 'recurring' in data:
        event.recurring = data.get('recurring')
    if 'documents' in data:
        event.documents = parse_string_list(data.get('documents'), 'documents')


@bp.route('', methods=['GET'])
@login_required
def list_events():
    args = request.args
    query = owned_query(CalendarEvent)
    query = apply_equal_filters(query, CalendarEvent, args, ('case_id', 'event_type', 'priority', 'status'))
    query = apply_date_range(query, CalendarEvent.start_time, args)
    query = apply_sort(query, CalendarEvent, args.get('sort'), '-start_time')
    query = apply_limit(query, args.get('limit'))
    events = [e.to_dict() for e in query.all()]
    return api_response(events, total=len(events))


@bp.route('/upcoming', methods=['GET'])
@login_required
def upcoming_events():
    query = (
        owned_query(CalendarEvent)
        .filter(CalendarEvent.start_time >= datetime.utcnow())
        .filter(CalendarEvent.status != 'cancelled')
        .order_by(CalendarEvent.start_time.asc())
    )
    query = apply_limit(query, request.args.get('limit') or 10)
    events = [e.to_dict() for e in query.all()]
    return api_response(events, total=len(events))


@bp.route('/today', methods=['GET'])
@login_required
def todays_events():
    start = datetime.utcnow().replace(hour=0, minute=0, second=0, microsecond=0)
    end = start + timedelta(days=1)
    events = (
        owned_query(CalendarEvent)
        .filter(CalendarEvent.start_time >= start, CalendarEvent.start_time < end)
        .order_by(CalendarEvent.start_time.asc())
        .all()
    )
    return api_response([e.to_dict() for e in events], total=len(events))


@bp.route('/stats', methods=['GET'])
@login_required
def event_stats():
    now = datetime.utcnow()
    query = owned_query(CalendarEvent)
    stats = {
        'total_events': query.count(),
        'upcoming_events': query.filter(CalendarEvent.start_time >= now, CalendarEvent.status != 'cancelled').count(),
        'overdue_events': query.filter(CalendarEvent.start_time < now, CalendarEvent.status == 'scheduled').count(),
        'completed_events': query.filter(CalendarEvent.status == 'completed').count(),
        'critical_events': query.filter(CalendarEvent.priority == 'critical').count(),
        'by_type': {t: 0 for t in EVENT_TYPES},
    }
    stats['by_type'].update(count_by(query, CalendarEvent.event_type))
    return api_response(stats)


def _ics_escape(text: str) -> str:
    return (text or '').replace('\\', '\\\\').replace('\n', '\\n').replace(',', '\\,').replace(';', '\\;')


@bp.route('/export.ics', methods=['GET'])
@login_required
def export_ics():
    events = (
        owned_query(CalendarEvent)
        .filter(CalendarEvent.status != 'cancelled')
        .order_by(CalendarEvent.start_time.asc())
        .all()
    )
    stamp = datetime.utcnow().strftime('%Y%m%dT%H%M%SZ')
    lines = [
        'BEGIN:VCALENDAR',
        'VERSION:2.0',
        'PRODID:-//CaseClerk//Calendar//EN'
    ]
    for ev in events:
        lines.extend([
            'BEGIN:VEVENT',
            f'UID:caseclerk-event-{ev.id}',
            f'DTSTAMP:{stamp}',
            f'SUMMARY:{_ics_escape(ev.title)}',
            f'DESCRIPTION:{_ics_escape(ev.description or "")}',
            f'DTSTART:{ev.start_time.strftime("%Y%m%dT%H%M%SZ")}',
            f'DTEND:{ev.end_time.strftime("%Y%m%dT%H%M%SZ")}',
            f'LOCATION:{_ics_escape(ev.location or "")}',
            'END:VEVENT'
        ])
    lines.append('END:VCALENDAR')
    return Response('\r\n'.join(lines), mimetype='text/calendar')


@bp.route('/<int:event_id>', methods=['GET'])
@login_required
def get_event(event_id):
    return api_response(_get_event(event_id).to_dict())


@bp.route('', methods=['POST'])
@login_required
def create_event():
    data = get_json_body()
    require_fields(data, ('title', 'start_time', 'end_time'), message='Title, start time, and end time are required')
    event = CalendarEvent(
        user_id=current_user.id,
        event_type='meeting',
        priority='medium',
        status='scheduled',
        attendees=[],
        reminders=[],
        documents=[],
    )
    _apply_fields(event, data)
    _check_range(event.start_time, event.end_time)
    db.session.add(event)
    db.session.commit()
    return api_response(event.to_dict(), message='Calendar event created successfully', status=201)


@bp.route('/<int:event_id>', methods=['PUT'])
@login_required
def update_event(event_id):
    event = _get_event(event_id)
    data = get_json_body()
    for field in ('title', 'start_time', 'end_time'):
        if field in data and not data.get(field):
            raise ApiError(f"{field} cannot be empty", 400, 'MISSING_REQUIRED_FIELDS')
    _apply_fields(event, data)
    _check_range(event.start_time, event.end_time)
    db.session.commit()
    return api_response(event.to_dict(), message='Calendar event updated successfully')


@bp.route('/<int:event_id>', methods=['DELETE'])
@login_required
def delete_event(event_id):
    event = _get_event(event_id)
    db.session.delete(event)
    db.session.commit()
    return api_response(message='Calendar event deleted successfully')


@bp.route('/<int:event_id>/reschedule', methods=['PUT'])
@login_required
def reschedule_event(event_id):
    event = _get_event(event_id)
    data = get_json_body()
    if not data.get('start_time') or not data.get('end_time'):
        raise ApiError('Start time and end time are required', 400, 'MISSING_TIMES')
    start_time = parse_datetime(data['start_time'], 'start_time')
    end_time = parse_datetime(data['end_time'], 'end_time')
    _check_range(start_time, end_time)
    event.start_time = start_time
    event.end_time = end_time
    event.status = 'rescheduled'
    # Reminders fire again for the new time
    event.reminders = [dict(r, sent=False) for r in (event.reminders or [])]
    db.session.commit()
    return api_response(event.to_dict(), message='Event rescheduled successfully')
