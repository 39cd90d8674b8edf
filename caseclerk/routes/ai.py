import os

from flask import Blueprint, current_app, request
from flask_login import login_required

from .. import limiter
from ..errors import ApiError
from ..models import CallLog, Case, Document
from ..services import ai
from ..services.storage import UploadStorage, stream_size
from ..services.stt import STTService, TranscriptionError
from ..utils import api_response, get_json_body, get_owned_or_404, parse_bool, parse_int

bp = Blueprint('ai', __name__)

ALLOWED_AUDIO_TYPES = {'audio/mpeg', 'audio/wav', 'audio/mp4', 'audio/m4a', 'audio/webm'}


def _ai_limit():
    return current_app.config['RATELIMIT_AI']


def _is_allowed_audio(content_type: str) -> bool:
    return (content_type or '').lower() in ALLOWED_AUDIO_TYPES


@bp.route('/invoke', methods=['POST'])
@limiter.limit(_ai_limit)
@login_required
def invoke():
    data = get_json_body()
    prompt = data.get('prompt') or ''
    if not str(prompt).strip():
        raise ApiError('Prompt is required', 400, 'MISSING_PROMPT')
    ai.simulate_latency()
    return api_response(ai.invoke(str(prompt), data.get('model') or 'gpt-3.5-turbo'))


@bp.route('/generate-document', methods=['POST'])
@limiter.limit(_ai_limit)
@login_required
def generate_document():
    data = get_json_body()
    template_type = data.get('template_type')
    if not template_type:
        raise ApiError('Template type is required', 400, 'MISSING_TEMPLATE_TYPE')
    ai.simulate_latency()
    return api_response(
        ai.generate_document(template_type, data.get('parameters') or {}),
        message='Document generated successfully',
    )


@bp.route('/transcribe', methods=['POST'])
@limiter.limit(_ai_limit)
@login_required
def transcribe():
    file = request.files.get('audio')
    if file is None or not file.filename:
        raise ApiError('No audio file uploaded', 400, 'NO_AUDIO_FILE')
    if not _is_allowed_audio(file.mimetype):
        raise ApiError('Audio file type not supported', 415, 'UNSUPPORTED_FILE_TYPE', details={'mime_type': file.mimetype})
    if stream_size(file) > current_app.config['AUDIO_MAX_BYTES']:
        raise ApiError('Audio file too large', 413, 'FILE_TOO_LARGE')
    language = request.form.get('language') or 'en'
    speaker_diarization = parse_bool(request.form.get('speaker_diarization', 'false'))

    storage = UploadStorage(subfolder='audio')
    stored = storage.save(file, prefix='audio')
    try:
        ai.simulate_latency()
        result = STTService().transcribe(stored['file_path'], language=language, speaker_labels=speaker_diarization)
    except TranscriptionError as e:
        current_app.logger.error(f"Transcription failed: {str(e)}")
        raise ApiError('Transcription failed', 502, 'TRANSCRIPTION_FAILED')
    finally:
        try:
            os.remove(stored['file_path'])
        except OSError as e:
            current_app.logger.warning(f"Could not remove audio upload {stored['file_name']}: {str(e)}")

    text = result.get('text') or ''
    data = {
        'transcript': text,
        'confidence': result.get('confidence'),
        'language': language,
        'duration': result.get('duration'),
        'word_count': len(text.split()),
    }
    if speaker_diarization:
        data['speakers'] = result.get('speakers') or []
    return api_response(data, message='Audio transcribed successfully')


@bp.route('/analyze-document', methods=['POST'])
@limiter.limit(_ai_limit)
@login_required
def analyze_document():
    data = get_json_body()
    if not data.get('document_id'):
        raise ApiError('Document ID is required', 400, 'MISSING_DOCUMENT_ID')
    document = get_owned_or_404(
        Document, parse_int(data['document_id'], 'document_id'), 'DOCUMENT_NOT_FOUND', 'Document not found',
    )
    ai.simulate_latency()
    return api_response(
        ai.analyze_document(document, data.get('analysis_type') or 'summary'),
        message='Document analysis completed successfully',
    )


@bp.route('/legal-research', methods=['POST'])
@limiter.limit(_ai_limit)
@login_required
def legal_research():
    data = get_json_body()
    query = (data.get('query') or '').strip()
    if not query:
        raise ApiError('Research query is required', 400, 'MISSING_QUERY')
    max_results = parse_int(data.get('max_results', 10), 'max_results')
    ai.simulate_latency()
    return api_response(
        ai.legal_research(query, data.get('jurisdiction'), 10 if max_results is None else max_results),
        message='Legal research completed successfully',
    )


@bp.route('/summarize-case', methods=['POST'])
@limiter.limit(_ai_limit)
@login_required
def summarize_case():
    data = get_json_body()
    if not data.get('case_id'):
        raise ApiError('Case ID is required', 400, 'MISSING_CASE_ID')
    case = get_owned_or_404(Case, parse_int(data['case_id'], 'case_id'), 'CASE_NOT_FOUND', 'Case not found')
    documents = case.documents.filter(Document.user_id == case.user_id).all() \
        if parse_bool(data.get('include_documents', False)) else None
    call_logs = case.call_logs.filter(CallLog.user_id == case.user_id).all() \
        if parse_bool(data.get('include_calls', False)) else None
    ai.simulate_latency()
    return api_response(
        ai.summarize_case(case, documents, call_logs),
        message='Case summary generated successfully',
    )


@bp.route('/models', methods=['GET'])
@limiter.limit(_ai_limit)
@login_required
def list_models():
    return api_response(ai.AVAILABLE_MODELS)
