import io
import os

import pytest

from caseclerk import create_app
from caseclerk.config import TestingConfig


def _upload(client, headers, content=b'The contract was signed on time.', name='notes.txt',
            mime='text/plain', **form):
    data = {'file': (io.BytesIO(content), name, mime)}
    data.update(form)
    return client.post('/api/documents/upload', data=data, headers=headers, content_type='multipart/form-data')


def test_text_upload_is_processed(client, auth_headers):
    resp = _upload(client, auth_headers, case_id='1', document_type='correspondence')
    assert resp.status_code == 201
    doc = resp.get_json()['data']
    assert doc['original_name'] == 'notes.txt'
    assert doc['mime_type'] == 'text/plain'
    assert doc['case_id'] == 1
    assert doc['file_size'] == len(b'The contract was signed on time.')

    resp = client.get(f"/api/documents/{doc['id']}/status", headers=auth_headers)
    status = resp.get_json()['data']
    assert status['status'] == 'completed'
    assert status['progress'] == 100
    assert status['ai_summary'] == 'AI-generated summary of the document content.'
    assert status['extracted_text'] == 'The contract was signed on time.'

    doc = client.get(f"/api/documents/{doc['id']}", headers=auth_headers).get_json()['data']
    assert 'auto-generated' in doc['tags'] and 'processed' in doc['tags']
    assert doc['metadata']['word_count'] == 6


def test_image_upload_completes_without_processing(client, auth_headers):
    resp = _upload(client, auth_headers, content=b'\x89PNG....', name='scan.png', mime='image/png')
    assert resp.status_code == 201
    doc = resp.get_json()['data']
    assert doc['status'] == 'completed'
    assert doc['ai_summary'] is None


def test_upload_requires_file(client, auth_headers):
    resp = client.post('/api/documents/upload', data={}, headers=auth_headers, content_type='multipart/form-data')
    assert resp.status_code == 400
    assert resp.get_json()['error']['code'] == 'NO_FILE'


def test_disallowed_type_is_rejected(client, auth_headers):
    resp = _upload(client, auth_headers, content=b'MZ', name='tool.exe', mime='application/x-msdownload')
    assert resp.status_code == 415
    assert resp.get_json()['error']['code'] == 'UNSUPPORTED_FILE_TYPE'


def test_unknown_case_is_rejected(client, auth_headers):
    resp = _upload(client, auth_headers, case_id='999')
    assert resp.status_code == 404
    assert resp.get_json()['error']['code'] == 'CASE_NOT_FOUND'


@pytest.fixture
def small_limit_client(tmp_path):
    class Config(TestingConfig):
        UPLOAD_FOLDER = str(tmp_path / 'uploads')
        DOCUMENT_MAX_BYTES = 1024

    return create_app(Config).test_client()


def test_oversized_upload_is_rejected(small_limit_client):
    client = small_limit_client
    token = client.post('/api/auth/login', json={'email': 'demo@caseclerk.ai', 'password': 'demo123'}) \
        .get_json()['data']['access_token']
    headers = {'Authorization': f'Bearer {token}'}
    resp = _upload(client, headers, content=b'x' * 2048)
    assert resp.status_code == 413
    assert resp.get_json()['error']['code'] == 'FILE_TOO_LARGE'
    assert client.get('/api/documents', headers=headers).get_json()['total'] == 1


def test_list_filters(client, auth_headers):
    _upload(client, auth_headers, document_type='motion')
    resp = client.get('/api/documents?document_type=motion', headers=auth_headers)
    data = resp.get_json()['data']
    assert len(data) == 1 and data[0]['document_type'] == 'motion'

    resp = client.get('/api/documents?case_id=1', headers=auth_headers)
    assert [d['original_name'] for d in resp.get_json()['data']] == ['contract_agreement.pdf']


def test_update_and_delete(client, auth_headers, app):
    doc = _upload(client, auth_headers).get_json()['data']
    resp = client.put(f"/api/documents/{doc['id']}", json={'document_type': 'order', 'tags': ['x'],
                                                            'file_size': 1}, headers=auth_headers)
    updated = resp.get_json()['data']
    assert updated['document_type'] == 'order'
    assert updated['tags'] == ['x']
    assert updated['file_size'] == doc['file_size']

    stored = os.path.join(app.config['UPLOAD_FOLDER'], doc['file_name'])
    assert os.path.exists(stored)
    resp = client.delete(f"/api/documents/{doc['id']}", headers=auth_headers)
    assert resp.status_code == 200
    assert not os.path.exists(stored)
    resp = client.get(f"/api/documents/{doc['id']}", headers=auth_headers)
    assert resp.status_code == 404
    assert resp.get_json()['error']['code'] == 'DOCUMENT_NOT_FOUND'


def test_download_link_and_file(client, auth_headers):
    doc = _upload(client, auth_headers).get_json()['data']
    resp = client.get(f"/api/documents/{doc['id']}/download", headers=auth_headers)
    info = resp.get_json()['data']
    assert info['filename'] == 'notes.txt'
    assert info['url'] == f"/api/documents/{doc['id']}/file"
    assert info['expires_at'].endswith('Z')

    resp = client.get(info['url'], headers=auth_headers)
    assert resp.status_code == 200
    assert resp.data == b'The contract was signed on time.'


def test_reprocess(client, auth_headers):
    resp = client.post('/api/documents/1/process', headers=auth_headers)
    assert resp.status_code == 200
    doc = client.get('/api/documents/1', headers=auth_headers).get_json()['data']
    assert doc['status'] == 'completed'
    assert doc['ai_summary'] == 'AI-generated summary after processing.'


def test_search_and_stats(client, auth_headers):
    _upload(client, auth_headers, content=b'deposition outline', name='depo.txt')
    resp = client.get('/api/documents/search?q=software', headers=auth_headers)
    assert [d['id'] for d in resp.get_json()['data']] == [1]

    resp = client.get('/api/documents/search?q=processed', headers=auth_headers)
    assert [d['original_name'] for d in resp.get_json()['data']] == ['depo.txt']

    stats = client.get('/api/documents/stats', headers=auth_headers).get_json()['data']
    assert stats['total'] == 2
    assert stats['completed'] == 2
    assert stats['by_type']['other'] == 2


def test_search_matches_non_ascii_tags(client, auth_headers):
    doc = _upload(client, auth_headers, content=b'exhibit list', name='exhibits.txt').get_json()['data']
    client.put(f"/api/documents/{doc['id']}", json={'tags': ['Señora Peña', 'exhibit']}, headers=auth_headers)

    resp = client.get('/api/documents/search?q=peña', headers=auth_headers)
    assert [d['id'] for d in resp.get_json()['data']] == [doc['id']]


def test_update_validates_list_and_object_fields(client, auth_headers):
    doc = _upload(client, auth_headers).get_json()['data']

    resp = client.put(f"/api/documents/{doc['id']}", json={'tags': 'urgent'}, headers=auth_headers)
    assert resp.status_code == 400
    assert resp.get_json()['error']['code'] == 'VALIDATION_ERROR'

    resp = client.put(f"/api/documents/{doc['id']}", json={'metadata': ['pages', 3]}, headers=auth_headers)
    assert resp.status_code == 400

    resp = client.put(f"/api/documents/{doc['id']}", json={'metadata': {'pages': 3}}, headers=auth_headers)
    assert resp.get_json()['data']['metadata'] == {'pages': 3}
