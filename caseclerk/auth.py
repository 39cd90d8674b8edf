"""Bearer-token authentication.

Access and refresh tokens are HS256 JWTs. Access tokens carry ``id``/``email``/
``role`` claims and authenticate API requests through Flask-Login's request
loader; refresh tokens only carry the identity and can only be exchanged at
``/api/auth/refresh``.
"""
from datetime import datetime, timedelta

import jwt
from flask import current_app, g, request

from . import login_manager
from .errors import ApiError
from .models import db, User

ACCESS_TOKEN = 'access'
REFRESH_TOKEN = 'refresh'


def _encode(claims, token_type, expires_in):
    now = datetime.utcnow()
    payload = dict(claims)
    payload.update({
        'type': token_type,
        'iat': now,
        'exp': now + timedelta(seconds=expires_in),
    })
    return jwt.encode(payload, current_app.config['JWT_SECRET'], algorithm=current_app.config['JWT_ALGORITHM'])


def create_access_token(user):
    return _encode(
        {'sub': str(user.id), 'id': user.id, 'email': user.email, 'role': user.role},
        ACCESS_TOKEN,
        current_app.config['JWT_ACCESS_EXPIRES_SECONDS'],
    )


def create_refresh_token(user):
    return _encode(
        {'sub': str(user.id), 'id': user.id, 'email': user.email},
        REFRESH_TOKEN,
        current_app.config['JWT_REFRESH_EXPIRES_SECONDS'],
    )


def decode_token(token, expected_type=ACCESS_TOKEN):
    """Verify a token and return its claims; raises jwt.InvalidTokenError subclasses."""
    claims = jwt.decode(
        token,
        current_app.config['JWT_SECRET'],
        algorithms=[current_app.config['JWT_ALGORITHM']],
        options={'require': ['exp', 'sub']},
    )
    if claims.get('type') != expected_type:
        raise jwt.InvalidTokenError(f"Expected a {expected_type} token")
    return claims


def issue_tokens(user):
    return {
        'user': user.summary_dict(),
        'access_token': create_access_token(user),
        'refresh_token': create_refresh_token(user),
        'expires_in': current_app.config['JWT_ACCESS_EXPIRES_SECONDS'],
    }


def _bearer_token():
    header = request.headers.get('Authorization', '')
    scheme, _, token = header.partition(' ')
    if scheme.lower() != 'bearer' or not token.strip():
        return None
    return token.strip()


@login_manager.request_loader
def load_user_from_request(req):
    token = _bearer_token()
    if token is None:
        return None
    try:
        claims = decode_token(token)
    except jwt.ExpiredSignatureError:
        g.auth_error = ('TOKEN_EXPIRED', 'Token expired')
        return None
    except jwt.InvalidTokenError:
        g.auth_error = ('INVALID_TOKEN', 'Invalid token')
        return None
    try:
        user_id = int(claims['sub'])
    except (TypeError, ValueError):
        g.auth_error = ('INVALID_TOKEN', 'Invalid token')
        return None
    user = db.session.get(User, user_id)
    if user is None or not user.is_active:
        return None
    return user


@login_manager.unauthorized_handler
def unauthorized():
    code, message = g.get('auth_error') or ('AUTH_REQUIRED', 'Access token required')
    raise ApiError(message, 401, code)
