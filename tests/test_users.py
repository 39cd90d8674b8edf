def test_profile(client, auth_headers):
    resp = client.get('/api/users/me', headers=auth_headers)
    assert resp.status_code == 200
    profile = resp.get_json()['data']
    assert profile['email'] == 'demo@caseclerk.ai'
    assert profile['license_level'] == 'attorney'
    assert 'password_hash' not in profile


def test_update_profile(client, auth_headers):
    resp = client.put('/api/users/me', json={
        'firm_name': 'Clerk & Co.', 'storage_location': 'cloud', 'role': 'admin',
    }, headers=auth_headers)
    assert resp.status_code == 200
    profile = resp.get_json()['data']
    assert profile['firm_name'] == 'Clerk & Co.'
    assert profile['storage_location'] == 'cloud'
    assert profile['role'] == 'attorney'

    resp = client.put('/api/users/me', json={'storage_location': 'tape'}, headers=auth_headers)
    assert resp.status_code == 400


def test_update_email_conflict(client, auth_headers):
    client.post('/api/auth/register', json={
        'email': 'taken@example.com', 'password': 'secret1', 'full_name': 'T', 'license_level': 'student',
    })
    resp = client.put('/api/users/me', json={'email': 'taken@example.com'}, headers=auth_headers)
    assert resp.status_code == 409
    assert resp.get_json()['error']['code'] == 'EMAIL_EXISTS'


def test_change_password(client, auth_headers):
    resp = client.put('/api/users/me/password', json={'new_password': 'abcdef'}, headers=auth_headers)
    assert resp.get_json()['error']['code'] == 'MISSING_PASSWORDS'

    resp = client.put('/api/users/me/password', json={'current_password': 'demo123', 'new_password': 'abc'},
                      headers=auth_headers)
    assert resp.get_json()['error']['code'] == 'WEAK_PASSWORD'

    resp = client.put('/api/users/me/password', json={'current_password': 'wrong', 'new_password': 'abcdef'},
                      headers=auth_headers)
    assert resp.status_code == 401

    resp = client.put('/api/users/me/password', json={'current_password': 'demo123', 'new_password': 'abcdef'},
                      headers=auth_headers)
    assert resp.status_code == 200
    resp = client.post('/api/auth/login', json={'email': 'demo@caseclerk.ai', 'password': 'abcdef'})
    assert resp.status_code == 200


def test_api_keys_are_masked(client, auth_headers):
    resp = client.put('/api/users/me/api-keys', json={'api_keys': {'openai': 'sk-test-123456789'}},
                      headers=auth_headers)
    assert resp.get_json()['data']['api_keys'] == {'openai': '***6789'}

    profile = client.get('/api/users/me', headers=auth_headers).get_json()['data']
    assert profile['api_keys']['openai'] == '***6789'

    resp = client.put('/api/users/me/api-keys', json={'api_keys': {'myspace': 'x'}}, headers=auth_headers)
    assert resp.status_code == 400


def test_feature_flags(client, auth_headers):
    resp = client.put('/api/users/me/feature-flags', json={'feature_flags': {'ai_calling': True}},
                      headers=auth_headers)
    flags = resp.get_json()['data']['feature_flags']
    assert flags['ai_calling'] is True
    assert flags['legal_research'] is True


def test_complete_onboarding(client):
    client.post('/api/auth/register', json={
        'email': 'new@example.com', 'password': 'secret1', 'full_name': 'New', 'license_level': 'pro_per',
    })
    token = client.post('/api/auth/login', json={'email': 'new@example.com', 'password': 'secret1'}) \
        .get_json()['data']['access_token']
    headers = {'Authorization': f'Bearer {token}'}
    assert client.get('/api/users/me', headers=headers).get_json()['data']['onboarding_completed'] is False
    resp = client.post('/api/users/me/complete-onboarding', headers=headers)
    assert resp.get_json()['data']['onboarding_completed'] is True


def test_preferences(client, auth_headers):
    prefs = client.get('/api/users/me/preferences', headers=auth_headers).get_json()['data']
    assert prefs['notifications']['reminder_time'] == 30
    assert prefs['ui_preferences']['timezone'] == 'America/Los_Angeles'

    resp = client.put('/api/users/me/preferences', json={
        'default_court': 'Dept. 12', 'ui_preferences': {'theme': 'dark'},
    }, headers=auth_headers)
    prefs = resp.get_json()['data']
    assert prefs['default_court'] == 'Dept. 12'
    assert prefs['ui_preferences']['theme'] == 'dark'
    assert prefs['ui_preferences']['language'] == 'en'


def test_delete_account_deactivates(client, auth_headers):
    resp = client.delete('/api/users/me', json={}, headers=auth_headers)
    assert resp.get_json()['error']['code'] == 'PASSWORD_REQUIRED'

    resp = client.delete('/api/users/me', json={'password': 'demo123'}, headers=auth_headers)
    assert resp.status_code == 200

    assert client.get('/api/users/me', headers=auth_headers).status_code == 401
    resp = client.post('/api/auth/login', json={'email': 'demo@caseclerk.ai', 'password': 'demo123'})
    assert resp.status_code == 401


def test_license_change_updates_role(client):
    client.post('/api/auth/register', json={
        'email': 'student@example.com', 'password': 'secret1', 'full_name': 'Stu', 'license_level': 'student',
    })
    token = client.post('/api/auth/login', json={'email': 'student@example.com', 'password': 'secret1'}) \
        .get_json()['data']['access_token']
    headers = {'Authorization': f'Bearer {token}'}

    profile = client.put('/api/users/me', json={'license_level': 'attorney'}, headers=headers).get_json()['data']
    assert profile['license_level'] == 'attorney'
    assert profile['role'] == 'attorney'

    tokens = client.post('/api/auth/login', json={'email': 'student@example.com', 'password': 'secret1'}) \
        .get_json()['data']
    assert tokens['user']['role'] == 'attorney'

    profile = client.put('/api/users/me', json={'license_level': 'paralegal'}, headers=headers).get_json()['data']
    assert profile['role'] == 'user'
