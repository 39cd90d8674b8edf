from caseclerk import create_app
from caseclerk.config import ProductionConfig, TestingConfig


def test_health(client):
    resp = client.get('/health')
    assert resp.status_code == 200
    body = resp.get_json()
    assert body['status'] == 'healthy'
    assert body['version'] == '1.0.0'
    assert body['environment'] == 'testing'
    assert body['timestamp'].endswith('Z')


def test_unknown_route_uses_error_envelope(client):
    resp = client.get('/api/nope')
    assert resp.status_code == 404
    body = resp.get_json()
    assert body['success'] is False
    assert body['error'] == {'code': 'NOT_FOUND', 'message': 'Route not found'}
    assert body['path'] == '/api/nope'
    assert body['timestamp']


def test_method_not_allowed(client, auth_headers):
    resp = client.patch('/api/cases/1', headers=auth_headers)
    assert resp.status_code == 405
    assert resp.get_json()['error']['code'] == 'METHOD_NOT_ALLOWED'


def test_non_object_body_is_rejected(client, auth_headers):
    resp = client.post('/api/cases', json=['not', 'an', 'object'], headers=auth_headers)
    assert resp.status_code == 400
    assert resp.get_json()['error']['code'] == 'INVALID_BODY'


def test_integrity_error_maps_to_conflict(app):
    from caseclerk.models import db, User

    @app.route('/boom-duplicate')
    def boom_duplicate():
        db.session.add(User(email='demo@caseclerk.ai', full_name='Dup', password_hash='x'))
        db.session.commit()

    resp = app.test_client().get('/boom-duplicate')
    assert resp.status_code == 409
    assert resp.get_json()['error']['code'] == 'DUPLICATE_ENTRY'


def test_uncaught_token_errors_map_to_401(app, make_token):
    from caseclerk.auth import decode_token

    @app.route('/decode/<token>')
    def decode(token):
        return decode_token(token)

    client = app.test_client()
    resp = client.get('/decode/garbage')
    assert resp.status_code == 401
    assert resp.get_json()['error']['code'] == 'INVALID_TOKEN'

    resp = client.get(f"/decode/{make_token(expires_in=-5)}")
    assert resp.status_code == 401
    assert resp.get_json()['error']['code'] == 'TOKEN_EXPIRED'


def test_unexpected_errors_are_hidden_in_production(tmp_path):
    class Config(ProductionConfig):
        TESTING = True
        SQLALCHEMY_DATABASE_URI = 'sqlite://'
        UPLOAD_FOLDER = str(tmp_path)
        SCHEDULER_ENABLED = False
        RATELIMIT_ENABLED = False
        SEED_DEMO_DATA = False

    app = create_app(Config)

    @app.route('/boom')
    def boom():
        raise RuntimeError('secret internals')

    resp = app.test_client().get('/boom')
    assert resp.status_code == 500
    body = resp.get_json()
    assert body['error']['code'] == 'INTERNAL_ERROR'
    assert 'secret' not in body['error']['message']


def test_unexpected_errors_show_message_outside_production(tmp_path):
    class Config(TestingConfig):
        UPLOAD_FOLDER = str(tmp_path)

    app = create_app(Config)

    @app.route('/boom')
    def boom():
        raise RuntimeError('visible detail')

    resp = app.test_client().get('/boom')
    assert resp.status_code == 500
    assert resp.get_json()['error']['message'] == 'visible detail'
