from datetime import datetime

from flask import Blueprint, current_app, request
from flask_login import current_user, login_required

from ..errors import ApiError, ValidationError
from ..models import db, CallLog, CALL_STATUSES, CALL_PURPOSES
from ..services import ai
from ..services.calls import end_call, mark_ringing
from ..services.scheduler import run_later
from ..utils import (
    api_response, apply_date_range, apply_equal_filters, apply_limit, apply_sort, count_by,
    get_json_body, get_owned_or_404, owned_query, parse_datetime, parse_int, parse_object,
    parse_string_list, require_fields, resolve_case_id, text_matches, validate_choice,
)

bp = Blueprint('call_logs', __name__)

TEXT_FIELDS = ('to_number', 'from_number', 'recording_url', 'transcript', 'summary', 'notes')


def _get_call(call_id):
    return get_owned_or_404(CallLog, call_id, 'CALL_LOG_NOT_FOUND', 'Call log not found')


def _apply_fields(call, data):
    for field in TEXT_FIELDS:
        if field in data:
            setattr(call, field, data.get(field))
    for field in ('started_at', 'ended_at'):
        if field in data:
            setattr(call, field, parse_datetime(data.get(field), field))
    if 'case_id' in data:
        call.case_id = resolve_case_id(data.get('case_id'))
    if 'duration' in data:
        call.duration = parse_int(data.get('duration'), 'duration')
    if 'call_status' in data:
        call.call_status = validate_choice(data['call_status'], CALL_STATUSES, 'call_status')
    if 'call_purpose' in data:
        call.call_purpose = validate_choice(data['call_purpose'], CALL_PURPOSES, 'call_purpose')
    if 'action_items' in data:
        call.action_items = parse_string_list(data.get('action_items'), 'action_items')
    if 'participants' in data:
        call.participants = _clean_participants(data.get('participants'))
    if 'ai_insights' in data:
        insights = data.get('ai_insights')
        call.ai_insights = None if insights is None else parse_object(insights, 'ai_insights')


def _clean_participants(participants):
    if participants is None:
        return []
    if not isinstance(participants, list):
        raise ValidationError('participants must be a list')
    cleaned = []
    for p in participants:
        if not isinstance(p, dict) or not p.get('name'):
            raise ValidationError('Each participant needs a name')
        participant = {'name': str(p['name']), 'role': p.get('role') or 'other'}
        if p.get('phone'):
            participant['phone'] = str(p['phone'])
        cleaned.append(participant)
    return cleaned


def _matches(call, term):
    names = [p.get('name') for p in (call.participants or [])]
    return text_matches(term, [call.notes, call.summary, call.transcript] + names)


@bp.route('', methods=['GET'])
@login_required
def list_call_logs():
    args = request.args
    query = owned_query(CallLog)
    query = apply_equal_filters(query, CallLog, args, ('case_id', 'call_status', 'call_purpose'))
    query = apply_date_range(query, CallLog.started_at, args)
    query = apply_sort(query, CallLog, args.get('sort'), '-created_date')
    query = apply_limit(query, args.get('limit'))
    calls = [c.to_dict() for c in query.all()]
    return api_response(calls, total=len(calls))


@bp.route('/search', methods=['GET'])
@login_required
def search_call_logs():
    q = (request.args.get('q') or '').strip()
    if not q:
        raise ApiError('Search query is required', 400, 'MISSING_QUERY')
    # Participants are JSON, so names are matched after loading
    query = apply_sort(owned_query(CallLog), CallLog, None, '-created_date')
    calls = [c.to_dict() for c in query.all() if _matches(c, q)]
    return api_response(calls, total=len(calls), query=q)


@bp.route('/stats', methods=['GET'])
@login_required
def call_stats():
    query = owned_query(CallLog)
    total = query.count()
    total_duration = query.with_entities(db.func.coalesce(db.func.sum(CallLog.duration), 0)).scalar() or 0
    by_status = count_by(query, CallLog.call_status)
    stats = {
        'total_calls': total,
        'total_duration': int(total_duration),
        'completed_calls': by_status.get('completed', 0),
        'failed_calls': by_status.get('failed', 0),
        'average_duration': round(total_duration / total) if total else 0,
        'by_purpose': {p: 0 for p in CALL_PURPOSES},
    }
    stats['by_purpose'].update(count_by(query, CallLog.call_purpose))
    return api_response(stats)


@bp.route('/<int:call_id>', methods=['GET'])
@login_required
def get_call_log(call_id):
    return api_response(_get_call(call_id).to_dict())


@bp.route('', methods=['POST'])
@login_required
def create_call_log():
    data = get_json_body()
    require_fields(
        data, ('to_number', 'from_number', 'started_at'),
        message='To number, from number, and start time are required',
    )
    call = CallLog(
        user_id=current_user.id,
        call_status='initiated',
        call_purpose='other',
        action_items=[],
        participants=[],
    )
    _apply_fields(call, data)
    db.session.add(call)
    db.session.commit()
    return api_response(call.to_dict(), message='Call log created successfully', status=201)


@bp.route('/<int:call_id>', methods=['PUT'])
@login_required
def update_call_log(call_id):
    call = _get_call(call_id)
    data = get_json_body()
    for field in ('to_number', 'from_number', 'started_at'):
        if field in data and not data.get(field):
            raise ApiError(f"{field} cannot be empty", 400, 'MISSING_REQUIRED_FIELDS')
    _apply_fields(call, data)
    db.session.commit()
    return api_response(call.to_dict(), message='Call log updated successfully')


@bp.route('/<int:call_id>', methods=['DELETE'])
@login_required
def delete_call_log(call_id):
    call = _get_call(call_id)
    db.session.delete(call)
    db.session.commit()
    return api_response(message='Call log deleted successfully')


@bp.route('/initiate', methods=['POST'])
@login_required
def initiate_call():
    data = get_json_body()
    to_number = (data.get('to_number') or '').strip()
    if not to_number:
        raise ApiError('To number is required', 400, 'MISSING_TO_NUMBER')
    call = CallLog(
        user_id=current_user.id,
        case_id=resolve_case_id(data.get('case_id')),
        to_number=to_number,
        from_number=current_app.config['OFFICE_PHONE_NUMBER'],
        started_at=datetime.utcnow(),
        call_status='initiated',
        call_purpose=validate_choice(data.get('call_purpose') or 'other', CALL_PURPOSES, 'call_purpose'),
        action_items=[],
        participants=[],
    )
    db.session.add(call)
    db.session.commit()
    current_app.logger.info(f"Call {call.id} initiated to {to_number}")
    call_id = call.id
    run_later(mark_ringing, current_app.config['CALL_RINGING_DELAY_SECONDS'], call_id)
    return api_response(
        {'call_id': call_id, 'status': 'initiated'},
        message='Call initiated successfully',
        status=201,
    )


@bp.route('/<int:call_id>/end', methods=['POST'])
@login_required
def end_call_log(call_id):
    call = _get_call(call_id)
    end_call(call)
    db.session.commit()
    return api_response(call.to_dict(), message='Call ended successfully')


@bp.route('/<int:call_id>/transcript', methods=['GET'])
@login_required
def call_transcript(call_id):
    call = _get_call(call_id)
    return api_response({
        'transcript': call.transcript or 'Transcript not available',
        'call_id': call.id,
        'duration': call.duration,
    })


@bp.route('/<int:call_id>/summarize', methods=['POST'])
@login_required
def summarize_call(call_id):
    call = _get_call(call_id)
    ai.simulate_latency()
    call.summary = ai.CALL_SUMMARY
    call.ai_insights = ai.call_insights(' '.join(t for t in (call.transcript, call.notes) if t))
    db.session.commit()
    return api_response({
        'summary': call.summary,
        'ai_insights': call.ai_insights,
        'call_id': call.id,
    }, message='Call summarized successfully')
