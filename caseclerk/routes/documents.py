import mimetypes
from datetime import datetime, timedelta

from flask import Blueprint, current_app, request, send_from_directory, url_for
from flask_login import current_user, login_required

from .. import limiter
from ..errors import ApiError
from ..models import db, isoformat, Document, DOCUMENT_TYPES, DOCUMENT_STATUSES
from ..services import ai
from ..services.documents import ALLOWED_DOCUMENT_TYPES, needs_processing, process_document
from ..services.scheduler import run_later
from ..services.storage import UploadStorage, stream_size
from ..utils import (
    api_response, apply_equal_filters, apply_limit, apply_sort, count_by, get_json_body,
    get_owned_or_404, owned_query, parse_object, parse_string_list, resolve_case_id, text_matches,
    validate_choice,
)

bp = Blueprint('documents', __name__)

PROGRESS_BY_STATUS = {'completed': 100, 'processing': 75, 'failed': 0}


def _upload_limit():
    return current_app.config['RATELIMIT_UPLOAD']


def _get_document(document_id):
    return get_owned_or_404(Document, document_id, 'DOCUMENT_NOT_FOUND', 'Document not found')


def _matches(document, term):
    return text_matches(
        term, [document.original_name, document.ai_summary, document.extracted_text] + list(document.tags or []),
    )


def _resolve_mime_type(file_storage):
    mime_type = (file_storage.mimetype or '').lower()
    if not mime_type or mime_type == 'application/octet-stream':
        mime_type = mimetypes.guess_type(file_storage.filename or '')[0] or mime_type
    return mime_type


@bp.route('', methods=['GET'])
@login_required
def list_documents():
    args = request.args
    query = owned_query(Document)
    query = apply_equal_filters(query, Document, args, ('case_id', 'document_type', 'status'))
    query = apply_sort(query, Document, args.get('sort'), '-created_date')
    query = apply_limit(query, args.get('limit'))
    documents = [d.to_dict() for d in query.all()]
    return api_response(documents, total=len(documents))


@bp.route('/search', methods=['GET'])
@login_required
def search_documents():
    q = (request.args.get('q') or '').strip()
    if not q:
        raise ApiError('Search query is required', 400, 'MISSING_QUERY')
    # Tags are JSON, so matching happens after loading
    query = apply_sort(owned_query(Document), Document, None, '-created_date')
    documents = [d.to_dict() for d in query.all() if _matches(d, q)]
    return api_response(documents, total=len(documents), query=q)


@bp.route('/stats', methods=['GET'])
@login_required
def document_stats():
    query = owned_query(Document)
    by_status = count_by(query, Document.status)
    stats = {
        'total': query.count(),
        'processing': by_status.get('processing', 0),
        'completed': by_status.get('completed', 0),
        'failed': by_status.get('failed', 0),
        'by_type': {t: 0 for t in DOCUMENT_TYPES},
    }
    stats['by_type'].update(count_by(query, Document.document_type))
    return api_response(stats)


@bp.route('/<int:document_id>', methods=['GET'])
@login_required
def get_document(document_id):
    return api_response(_get_document(document_id).to_dict())


@bp.route('/upload', methods=['POST'])
@limiter.limit(_upload_limit)
@login_required
def upload_document():
    file = request.files.get('file')
    if file is None or not file.filename:
        raise ApiError('No file uploaded', 400, 'NO_FILE')
    max_bytes = current_app.config['DOCUMENT_MAX_BYTES']
    if stream_size(file) > max_bytes:
        raise ApiError(f"File exceeds the {max_bytes // (1024 * 1024)}MB limit", 413, 'FILE_TOO_LARGE')
    mime_type = _resolve_mime_type(file)
    if mime_type not in ALLOWED_DOCUMENT_TYPES:
        raise ApiError('File type not allowed', 415, 'UNSUPPORTED_FILE_TYPE', details={'mime_type': mime_type})

    case_id = resolve_case_id(request.form.get('case_id'))
    document_type = validate_choice(request.form.get('document_type') or 'other', DOCUMENT_TYPES, 'document_type')

    stored = UploadStorage().save(file)
    document = Document(
        case_id=case_id,
        original_name=stored['original_name'],
        file_name=stored['file_name'],
        file_size=stored['file_size'],
        mime_type=mime_type,
        document_type=document_type,
        status='processing' if needs_processing(mime_type) else 'completed',
        tags=[],
        meta={},
        user_id=current_user.id,
    )
    db.session.add(document)
    db.session.flush()
    document.file_url = url_for('documents.download_file', document_id=document.id)
    db.session.commit()
    current_app.logger.info(f"Document {document.id} uploaded ({document.mime_type}, {document.file_size} bytes)")

    if document.status == 'processing':
        run_later(process_document, current_app.config['DOCUMENT_PROCESSING_DELAY_SECONDS'], document.id)
    return api_response(document.to_dict(), message='File uploaded successfully', status=201)


@bp.route('/<int:document_id>', methods=['PUT'])
@login_required
def update_document(document_id):
    document = _get_document(document_id)
    data = get_json_body()
    if 'case_id' in data:
        document.case_id = resolve_case_id(data.get('case_id'))
    if 'document_type' in data:
        document.document_type = validate_choice(data['document_type'], DOCUMENT_TYPES, 'document_type')
    if 'status' in data:
        document.status = validate_choice(data['status'], DOCUMENT_STATUSES, 'status')
    for field in ('original_name', 'ai_summary', 'extracted_text'):
        if field in data:
            setattr(document, field, data.get(field))
    if 'tags' in data:
        document.tags = parse_string_list(data.get('tags'), 'tags')
    if 'metadata' in data:
        document.meta = parse_object(data.get('metadata'), 'metadata')
    db.session.commit()
    return api_response(document.to_dict(), message='Document updated successfully')


@bp.route('/<int:document_id>', methods=['DELETE'])
@login_required
def delete_document(document_id):
    document = _get_document(document_id)
    file_name = document.file_name
    db.session.delete(document)
    db.session.commit()
    try:
        UploadStorage().delete(file_name)
    except OSError as e:
        current_app.logger.error(f"Could not remove stored file {file_name}: {str(e)}")
    return api_response(message='Document deleted successfully')


@bp.route('/<int:document_id>/download', methods=['GET'])
@login_required
def download_document(document_id):
    document = _get_document(document_id)
    return api_response({
        'url': document.file_url or url_for('documents.download_file', document_id=document.id),
        'filename': document.original_name,
        'expires_at': isoformat(datetime.utcnow() + timedelta(hours=1)),
    })


@bp.route('/<int:document_id>/file', methods=['GET'])
@login_required
def download_file(document_id):
    document = _get_document(document_id)
    storage = UploadStorage()
    return send_from_directory(
        storage.folder,
        document.file_name,
        as_attachment=True,
        download_name=document.original_name,
        mimetype=document.mime_type,
    )


@bp.route('/<int:document_id>/process', methods=['POST'])
@login_required
def reprocess_document(document_id):
    document = _get_document(document_id)
    document.status = 'processing'
    db.session.commit()
    run_later(
        process_document,
        current_app.config['DOCUMENT_REPROCESS_DELAY_SECONDS'],
        document.id,
        ai.REPROCESSED_SUMMARY,
    )
    return api_response(
        {'id': document.id, 'status': document.status},
        message='Document processing started',
    )


@bp.route('/<int:document_id>/status', methods=['GET'])
@login_required
def document_status(document_id):
    document = _get_document(document_id)
    return api_response({
        'id': document.id,
        'status': document.status,
        'progress': PROGRESS_BY_STATUS.get(document.status, 50),
        'ai_summary': document.ai_summary,
        'extracted_text': document.extracted_text,
    })
