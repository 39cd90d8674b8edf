import logging
from datetime import datetime

from ..models import db, Document
from . import ai
from .storage import UploadStorage

logger = logging.getLogger(__name__)

PROCESSABLE_MIME_TYPES = ('application/pdf', 'text/plain')

ALLOWED_DOCUMENT_TYPES = {
    'application/pdf',
    'application/msword',
    'application/vnd.openxmlformats-officedocument.wordprocessingml.document',
    'text/plain',
    'image/jpeg',
    'image/png',
    'image/gif',
}


def needs_processing(mime_type):
    return mime_type in PROCESSABLE_MIME_TYPES


def _extract_text(document):
    if document.mime_type == 'text/plain':
        return UploadStorage().read_text(document.file_name)
    return f"Extracted text content from {document.original_name}"


def process_document(document_id, summary=ai.DOCUMENT_SUMMARY):
    """Run mock AI analysis on a stored document and mark it completed."""
    document = db.session.get(Document, document_id)
    if document is None:
        logger.warning(f"Document {document_id} vanished before processing")
        return None
    try:
        text = _extract_text(document)
        meta = dict(document.meta or {})
        meta['word_count'] = len(text.split())
        meta['processed_at'] = datetime.utcnow().isoformat() + 'Z'
        tags = list(document.tags or [])
        for tag in ai.PROCESSED_TAGS:
            if tag not in tags:
                tags.append(tag)
        document.extracted_text = text
        document.ai_summary = summary
        document.tags = tags
        document.meta = meta
        document.status = 'completed'
        db.session.commit()
        logger.info(f"Document {document_id} processed")
    except Exception as e:
        db.session.rollback()
        logger.error(f"Processing failed for document {document_id}: {str(e)}")
        document = db.session.get(Document, document_id)
        document.status = 'failed'
        db.session.commit()
    return document
