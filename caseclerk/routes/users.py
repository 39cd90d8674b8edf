from flask import Blueprint, current_app
from flask_login import current_user, login_required

from ..errors import ApiError, ValidationError
from ..models import (
    db, User, API_KEY_PROVIDERS, LICENSE_LEVELS, STORAGE_LOCATIONS, default_preferences, role_for_license,
)
from ..utils import api_response, get_json_body, validate_choice
from .auth import EMAIL_RE, MIN_PASSWORD_LENGTH

bp = Blueprint('users', __name__)

PROFILE_FIELDS = (
    'full_name', 'bar_number', 'firm_name', 'firm_address', 'phone_primary', 'phone_secondary',
    'website', 'default_jurisdiction', 'default_court',
)
FEATURE_FLAGS = ('ai_calling', 'legal_research', 'advanced_analytics')


def _merge(current, updates, field):
    if not isinstance(updates, dict):
        raise ValidationError(f"{field} must be an object")
    merged = dict(current or {})
    merged.update(updates)
    return merged


def _preferences_payload(user):
    prefs = _merge(default_preferences(), user.preferences or {}, 'preferences')
    return {
        'default_jurisdiction': user.default_jurisdiction,
        'default_court': user.default_court,
        'storage_location': user.storage_location,
        'feature_flags': user.feature_flags or {},
        'notifications': prefs.get('notifications', {}),
        'ui_preferences': prefs.get('ui_preferences', {}),
    }


@bp.route('/me', methods=['GET'])
@login_required
def get_profile():
    user = db.session.get(User, current_user.id)
    if user is None:
        raise ApiError('User not found', 404, 'USER_NOT_FOUND')
    return api_response(user.to_dict())


@bp.route('/me', methods=['PUT'])
@login_required
def update_profile():
    user = current_user
    data = get_json_body()
    if 'email' in data:
        email = (data.get('email') or '').strip().lower()
        if not EMAIL_RE.match(email):
            raise ApiError('Invalid email format', 400, 'INVALID_EMAIL')
        if email != user.email and User.query.filter(User.email == email, User.id != user.id).first():
            raise ApiError('Email already in use', 409, 'EMAIL_EXISTS')
        user.email = email
    for field in PROFILE_FIELDS:
        if field in data:
            setattr(user, field, data.get(field))
    if 'full_name' in data and not data.get('full_name'):
        raise ValidationError('full_name cannot be empty')
    if 'license_level' in data:
        user.license_level = validate_choice(data['license_level'], LICENSE_LEVELS, 'license_level')
        user.role = role_for_license(user.license_level)
    if 'storage_location' in data:
        user.storage_location = validate_choice(data['storage_location'], STORAGE_LOCATIONS, 'storage_location')
    if 'feature_flags' in data:
        user.feature_flags = _merge(user.feature_flags, data['feature_flags'], 'feature_flags')
    if 'onboarding_completed' in data:
        user.onboarding_completed = bool(data['onboarding_completed'])
    db.session.commit()
    return api_response(user.to_dict(), message='Profile updated successfully')


@bp.route('/me/password', methods=['PUT'])
@login_required
def change_password():
    data = get_json_body()
    current_password = data.get('current_password')
    new_password = data.get('new_password')
    if not current_password or not new_password:
        raise ApiError('Current password and new password are required', 400, 'MISSING_PASSWORDS')
    if len(new_password) < MIN_PASSWORD_LENGTH:
        raise ApiError('New password must be at least 6 characters long', 400, 'WEAK_PASSWORD')
    if not current_user.check_password(current_password):
        raise ApiError('Current password is incorrect', 401, 'INVALID_CREDENTIALS')
    current_user.set_password(new_password)
    db.session.commit()
    current_app.logger.info(f"Password changed for user {current_user.id}")
    return api_response(message='Password updated successfully')


@bp.route('/me/api-keys', methods=['PUT'])
@login_required
def update_api_keys():
    data = get_json_body()
    api_keys = data.get('api_keys')
    if not isinstance(api_keys, dict):
        raise ValidationError('api_keys must be an object')
    unknown = [k for k in api_keys if k not in API_KEY_PROVIDERS]
    if unknown:
        raise ValidationError('Unknown API key provider', details={'unknown': unknown, 'allowed': list(API_KEY_PROVIDERS)})
    current_user.api_keys = _merge(current_user.api_keys, api_keys, 'api_keys')
    db.session.commit()
    return api_response({'api_keys': current_user.masked_api_keys()}, message='API keys updated successfully')


@bp.route('/me/feature-flags', methods=['PUT'])
@login_required
def update_feature_flags():
    data = get_json_body()
    flags = data.get('feature_flags')
    if not isinstance(flags, dict):
        raise ValidationError('feature_flags must be an object')
    unknown = [k for k in flags if k not in FEATURE_FLAGS]
    if unknown:
        raise ValidationError('Unknown feature flag', details={'unknown': unknown, 'allowed': list(FEATURE_FLAGS)})
    current_user.feature_flags = _merge(current_user.feature_flags, {k: bool(v) for k, v in flags.items()}, 'feature_flags')
    db.session.commit()
    return api_response({'feature_flags': current_user.feature_flags}, message='Feature flags updated successfully')


@bp.route('/me/complete-onboarding', methods=['POST'])
@login_required
def complete_onboarding():
    current_user.onboarding_completed = True
    db.session.commit()
    return api_response(current_user.to_dict(), message='Onboarding completed successfully')


@bp.route('/me/preferences', methods=['GET'])
@login_required
def get_preferences():
    return api_response(_preferences_payload(current_user))


@bp.route('/me/preferences', methods=['PUT'])
@login_required
def update_preferences():
    user = current_user
    data = get_json_body()
    for field in ('default_jurisdiction', 'default_court'):
        if field in data:
            setattr(user, field, data.get(field))
    if 'storage_location' in data:
        user.storage_location = validate_choice(data['storage_location'], STORAGE_LOCATIONS, 'storage_location')
    if 'feature_flags' in data:
        user.feature_flags = _merge(user.feature_flags, data['feature_flags'], 'feature_flags')
    prefs = _merge(default_preferences(), user.preferences or {}, 'preferences')
    for section in ('notifications', 'ui_preferences'):
        if section in data:
            prefs[section] = _merge(prefs.get(section), data[section], section)
    user.preferences = prefs
    db.session.commit()
    return api_response(_preferences_payload(user), message='Preferences updated successfully')


@bp.route('/me', methods=['DELETE'])
@login_required
def delete_account():
    data = get_json_body()
    password = data.get('password')
    if not password:
        raise ApiError('Password is required to delete account', 400, 'PASSWORD_REQUIRED')
    if not current_user.check_password(password):
        raise ApiError('Password is incorrect', 401, 'INVALID_CREDENTIALS')
    current_user.is_active = False
    db.session.commit()
    current_app.logger.info(f"User {current_user.id} deactivated their account")
    return api_response(message='Account deleted successfully')
