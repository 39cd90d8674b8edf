import re

import jwt
from flask import Blueprint, current_app
from flask_login import current_user, login_required

from .. import limiter
from ..auth import REFRESH_TOKEN, create_access_token, decode_token, issue_tokens
from ..errors import ApiError
from ..models import db, User, LICENSE_LEVELS, role_for_license
from ..utils import api_response, get_json_body, validate_choice

bp = Blueprint('auth', __name__)

EMAIL_RE = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')
MIN_PASSWORD_LENGTH = 6


def _login_limit():
    return current_app.config['RATELIMIT_LOGIN']


@bp.route('/login', methods=['POST'])
@limiter.limit(_login_limit)
def login():
    data = get_json_body()
    email = (data.get('email') or '').strip().lower()
    password = data.get('password') or ''
    if not email or not password:
        raise ApiError('Email and password are required', 400, 'MISSING_CREDENTIALS')
    user = User.query.filter_by(email=email).first()
    if user is None or not user.is_active or not user.check_password(password):
        current_app.logger.info(f"Failed login for {email}")
        raise ApiError('Invalid email or password', 401, 'INVALID_CREDENTIALS')
    return api_response(issue_tokens(user), message='Login successful')


@bp.route('/register', methods=['POST'])
def register():
    data = get_json_body()
    email = (data.get('email') or '').strip().lower()
    password = data.get('password') or ''
    full_name = (data.get('full_name') or '').strip()
    license_level = data.get('license_level')
    if not email or not password or not full_name or not license_level:
        raise ApiError('Email, password, full name, and license level are required', 400, 'MISSING_FIELDS')
    if not EMAIL_RE.match(email):
        raise ApiError('Invalid email format', 400, 'INVALID_EMAIL')
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ApiError('Password must be at least 6 characters long', 400, 'WEAK_PASSWORD')
    validate_choice(license_level, LICENSE_LEVELS, 'license_level')
    if User.query.filter_by(email=email).first() is not None:
        raise ApiError('Email already registered', 409, 'EMAIL_EXISTS')

    user = User(
        email=email,
        full_name=full_name,
        license_level=license_level,
        role=role_for_license(license_level),
        bar_number=data.get('bar_number'),
        firm_name=data.get('firm_name'),
    )
    user.set_password(password)
    db.session.add(user)
    db.session.commit()
    current_app.logger.info(f"Registered user {user.id} ({email})")
    return api_response(issue_tokens(user), message='Registration successful', status=201)


@bp.route('/refresh', methods=['POST'])
def refresh():
    data = get_json_body()
    token = data.get('refresh_token')
    if not token:
        raise ApiError('Refresh token is required', 400, 'MISSING_REFRESH_TOKEN')
    try:
        claims = decode_token(token, expected_type=REFRESH_TOKEN)
        user = db.session.get(User, int(claims['sub']))
    except (jwt.InvalidTokenError, ValueError):
        user = None
    if user is None or not user.is_active:
        raise ApiError('Invalid refresh token', 401, 'INVALID_REFRESH_TOKEN')
    return api_response({
        'access_token': create_access_token(user),
        'expires_in': current_app.config['JWT_ACCESS_EXPIRES_SECONDS'],
    })


@bp.route('/logout', methods=['POST'])
def logout():
    # Tokens are stateless; clients discard them
    return api_response(message='Logout successful')


@bp.route('/me', methods=['GET'])
@login_required
def me():
    return api_response(current_user.to_dict())
