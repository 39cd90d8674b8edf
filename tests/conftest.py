from datetime import datetime, timedelta

import jwt
import pytest

from caseclerk import create_app
from caseclerk.config import TestingConfig

DEMO_CREDENTIALS = {'email': 'demo@caseclerk.ai', 'password': 'demo123'}


@pytest.fixture
def app(tmp_path):
    class Config(TestingConfig):
        UPLOAD_FOLDER = str(tmp_path / 'uploads')

    app = create_app(Config)
    yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def tokens(client):
    resp = client.post('/api/auth/login', json=DEMO_CREDENTIALS)
    assert resp.status_code == 200
    return resp.get_json()['data']


@pytest.fixture
def auth_headers(tokens):
    return {'Authorization': f"Bearer {tokens['access_token']}"}


@pytest.fixture
def make_token(app):
    """Mint a token directly, bypassing the login endpoint."""
    def _make(user_id=1, token_type='access', expires_in=3600, secret=None, **claims):
        now = datetime.utcnow()
        payload = {
            'sub': str(user_id),
            'id': user_id,
            'type': token_type,
            'iat': now,
            'exp': now + timedelta(seconds=expires_in),
        }
        payload.update(claims)
        return jwt.encode(payload, secret or app.config['JWT_SECRET'], algorithm='HS256')
    return _make


@pytest.fixture
def new_case(client, auth_headers):
    def _create(**overrides):
        body = {'case_number': '2025-CV-000100', 'title': 'Acme vs. Widget Co.'}
        body.update(overrides)
        resp = client.post('/api/cases', json=body, headers=auth_headers)
        assert resp.status_code == 201, resp.get_json()
        return resp.get_json()['data']
    return _create
