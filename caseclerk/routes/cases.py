from flask import Blueprint, current_app, request
from flask_login import current_user, login_required

from ..errors import ApiError
from ..models import db, Case, Document, CallLog, CalendarEvent, CASE_STATUSES, CASE_TYPES, CASE_PRIORITIES
from ..utils import (
    api_response, apply_equal_filters, apply_limit, apply_search, apply_sort, count_by,
    get_json_body, get_owned_or_404, owned_query, parse_datetime, parse_string_list, require_fields,
    validate_choice,
)

bp = Blueprint('cases', __name__)

TEXT_FIELDS = (
    'case_number', 'title', 'plaintiff', 'defendant', 'jurisdiction', 'court_address',
    'judge', 'department', 'summary',
)
DATE_FIELDS = ('next_hearing', 'statute_of_limitations')
LIST_SEARCH_COLUMNS = (Case.case_number, Case.title, Case.plaintiff, Case.defendant)


def _get_case(case_id):
    return get_owned_or_404(Case, case_id, 'CASE_NOT_FOUND', 'Case not found')


def _ensure_unique_number(case_number, exclude_id=None):
    query = Case.query.filter(Case.case_number == case_number)
    if exclude_id is not None:
        query = query.filter(Case.id != exclude_id)
    if query.first() is not None:
        raise ApiError('Case number already exists', 409, 'DUPLICATE_CASE_NUMBER')


def _apply_fields(case, data):
    for field in TEXT_FIELDS:
        if field in data:
            setattr(case, field, data.get(field))
    for field in DATE_FIELDS:
        if field in data:
            setattr(case, field, parse_datetime(data.get(field), field))
    if 'status' in data:
        case.status = validate_choice(data['status'], CASE_STATUSES, 'status')
    if 'case_type' in data:
        case.case_type = validate_choice(data['case_type'], CASE_TYPES, 'case_type')
    if 'priority' in data:
        case.priority = validate_choice(data['priority'], CASE_PRIORITIES, 'priority')
    if 'tags' in data:
        case.tags = parse_string_list(data.get('tags'), 'tags')


@bp.route('', methods=['GET'])
@login_required
def list_cases():
    args = request.args
    query = owned_query(Case)
    query = apply_equal_filters(query, Case, args, ('status', 'case_type', 'priority'))
    query = apply_search(query, (args.get('search') or '').strip(), LIST_SEARCH_COLUMNS)
    query = apply_sort(query, Case, args.get('sort'), '-updated_date')
    query = apply_limit(query, args.get('limit'))
    cases = [c.to_dict() for c in query.all()]
    return api_response(cases, total=len(cases))


@bp.route('/search', methods=['GET'])
@login_required
def search_cases():
    q = (request.args.get('q') or '').strip()
    if not q:
        raise ApiError('Search query is required', 400, 'MISSING_QUERY')
    query = apply_search(owned_query(Case), q, LIST_SEARCH_COLUMNS + (Case.summary,))
    query = apply_sort(query, Case, None, '-updated_date')
    cases = [c.to_dict() for c in query.all()]
    return api_response(cases, total=len(cases), query=q)


@bp.route('/stats', methods=['GET'])
@login_required
def case_stats():
    query = owned_query(Case)
    by_status = count_by(query, Case.status)
    stats = {
        'total': query.count(),
        'active': by_status.get('active', 0),
        'pending': by_status.get('pending', 0),
        'closed': by_status.get('closed', 0),
        'urgent': query.filter(Case.priority == 'urgent').count(),
        'by_type': {t: 0 for t in CASE_TYPES},
    }
    stats['by_type'].update(count_by(query, Case.case_type))
    return api_response(stats)


@bp.route('/<int:case_id>', methods=['GET'])
@login_required
def get_case(case_id):
    return api_response(_get_case(case_id).to_dict())


@bp.route('', methods=['POST'])
@login_required
def create_case():
    data = get_json_body()
    require_fields(data, ('case_number', 'title'), message='Case number and title are required')
    _ensure_unique_number(data['case_number'])
    case = Case(user_id=current_user.id, status='active', case_type='civil', priority='medium', tags=[])
    _apply_fields(case, data)
    db.session.add(case)
    db.session.commit()
    current_app.logger.info(f"Case {case.id} ({case.case_number}) created by user {current_user.id}")
    return api_response(case.to_dict(), message='Case created successfully', status=201)


@bp.route('/<int:case_id>', methods=['PUT'])
@login_required
def update_case(case_id):
    case = _get_case(case_id)
    data = get_json_body()
    for field in ('case_number', 'title'):
        if field in data and not data.get(field):
            raise ApiError(f"{field} cannot be empty", 400, 'MISSING_REQUIRED_FIELDS')
    if data.get('case_number') and data['case_number'] != case.case_number:
        _ensure_unique_number(data['case_number'], exclude_id=case.id)
    _apply_fields(case, data)
    db.session.commit()
    return api_response(case.to_dict(), message='Case updated successfully')


@bp.route('/<int:case_id>', methods=['DELETE'])
@login_required
def delete_case(case_id):
    case = _get_case(case_id)
    # Related records outlive the case
    for model in (Document, CallLog, CalendarEvent):
        model.query.filter(model.case_id == case.id).update({'case_id': None}, synchronize_session=False)
    db.session.delete(case)
    db.session.commit()
    current_app.logger.info(f"Case {case_id} deleted by user {current_user.id}")
    return api_response(message='Case deleted successfully')
