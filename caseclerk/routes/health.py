from datetime import datetime

from flask import Blueprint, current_app, jsonify

from .. import limiter
from ..models import isoformat

bp = Blueprint('health', __name__)


@bp.route('/health', methods=['GET'])
@limiter.exempt
def health():
    return jsonify({
        'status': 'healthy',
        'timestamp': isoformat(datetime.utcnow()),
        'version': current_app.config['APP_VERSION'],
        'environment': current_app.config['ENVIRONMENT'],
    })
