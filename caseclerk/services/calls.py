import logging
from datetime import datetime

from ..models import db, CallLog

logger = logging.getLogger(__name__)


def mark_ringing(call_id):
    """Advance a freshly initiated call to 'ringing'."""
    call = db.session.get(CallLog, call_id)
    if call is None or call.call_status != 'initiated':
        return call
    call.call_status = 'ringing'
    db.session.commit()
    logger.info(f"Call {call_id} to {call.to_number} is ringing")
    return call


def end_call(call, now=None):
    """Complete a call once; later calls leave it untouched."""
    if call.ended_at is not None:
        return call
    now = now or datetime.utcnow()
    call.ended_at = now
    call.duration = max(0, int((now - call.started_at).total_seconds()))
    call.call_status = 'completed'
    return call
