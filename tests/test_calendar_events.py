from datetime import datetime, timedelta


def _iso(dt):
    return dt.replace(microsecond=0).isoformat() + 'Z'


def _event(client, headers, start, hours=1, **extra):
    body = {'title': 'Status conference', 'start_time': _iso(start), 'end_time': _iso(start + timedelta(hours=hours))}
    body.update(extra)
    return client.post('/api/calendar-events', json=body, headers=headers)


def test_create_requires_fields(client, auth_headers):
    resp = client.post('/api/calendar-events', json={'title': 'No times'}, headers=auth_headers)
    assert resp.status_code == 400
    assert resp.get_json()['error']['code'] == 'MISSING_REQUIRED_FIELDS'


def test_start_must_precede_end(client, auth_headers):
    start = datetime.utcnow() + timedelta(days=2)
    resp = _event(client, auth_headers, start, hours=-1)
    assert resp.status_code == 400
    assert resp.get_json()['error']['code'] == 'INVALID_DATE_RANGE'

    resp = _event(client, auth_headers, start, hours=0)
    assert resp.status_code == 400


def test_create_with_attendees_and_reminders(client, auth_headers):
    start = datetime.utcnow() + timedelta(days=3)
    resp = _event(
        client, auth_headers, start,
        case_id=1, event_type='deposition', priority='critical',
        attendees=[{'name': 'Jane Johnson', 'email': 'jane@example.com', 'role': 'witness', 'required': True}],
        reminders=[{'time_before': 120, 'method': 'sms'}],
    )
    assert resp.status_code == 201
    event = resp.get_json()['data']
    assert event['status'] == 'scheduled'
    assert event['reminders'] == [{'time_before': 120, 'method': 'sms', 'sent': False}]
    assert event['attendees'][0]['email'] == 'jane@example.com'


def test_update_revalidates_range(client, auth_headers):
    start = datetime.utcnow() + timedelta(days=1)
    event = _event(client, auth_headers, start).get_json()['data']
    resp = client.put(f"/api/calendar-events/{event['id']}", json={'end_time': _iso(start - timedelta(hours=1))},
                      headers=auth_headers)
    assert resp.status_code == 400
    assert resp.get_json()['error']['code'] == 'INVALID_DATE_RANGE'

    resp = client.put(f"/api/calendar-events/{event['id']}", json={'location': 'Room 5'}, headers=auth_headers)
    assert resp.get_json()['data']['location'] == 'Room 5'


def test_reschedule(client, auth_headers):
    resp = client.put('/api/calendar-events/1/reschedule', json={'start_time': '2025-05-01T10:00:00Z'},
                      headers=auth_headers)
    assert resp.status_code == 400
    assert resp.get_json()['error']['code'] == 'MISSING_TIMES'

    resp = client.put('/api/calendar-events/1/reschedule', json={
        'start_time': '2025-05-01T10:00:00Z', 'end_time': '2025-05-01T09:00:00Z',
    }, headers=auth_headers)
    assert resp.get_json()['error']['code'] == 'INVALID_DATE_RANGE'

    resp = client.put('/api/calendar-events/1/reschedule', json={
        'start_time': '2025-05-01T10:00:00Z', 'end_time': '2025-05-01T11:00:00Z',
    }, headers=auth_headers)
    event = resp.get_json()['data']
    assert event['status'] == 'rescheduled'
    assert event['start_time'] == '2025-05-01T10:00:00Z'


def test_upcoming_excludes_cancelled_and_sorts_ascending(client, auth_headers):
    now = datetime.utcnow()
    later = _event(client, auth_headers, now + timedelta(days=5), title='Later').get_json()['data']
    sooner = _event(client, auth_headers, now + timedelta(days=1), title='Sooner').get_json()['data']
    _event(client, auth_headers, now + timedelta(days=2), title='Cancelled', status='cancelled')

    data = client.get('/api/calendar-events/upcoming', headers=auth_headers).get_json()['data']
    assert [e['id'] for e in data] == [sooner['id'], later['id']]

    data = client.get('/api/calendar-events/upcoming?limit=1', headers=auth_headers).get_json()['data']
    assert [e['id'] for e in data] == [sooner['id']]


def test_today(client, auth_headers):
    today_noon = datetime.utcnow().replace(hour=12, minute=0, second=0, microsecond=0)
    event = _event(client, auth_headers, today_noon, hours=1, title='Today').get_json()['data']
    _event(client, auth_headers, today_noon + timedelta(days=2), title='Not today')
    data = client.get('/api/calendar-events/today', headers=auth_headers).get_json()['data']
    assert [e['id'] for e in data] == [event['id']]


def test_list_filters(client, auth_headers):
    data = client.get('/api/calendar-events?event_type=hearing', headers=auth_headers).get_json()['data']
    assert [e['title'] for e in data] == ['Contract Dispute Hearing']

    data = client.get('/api/calendar-events', headers=auth_headers).get_json()['data']
    # Latest start first by default
    assert [e['id'] for e in data] == [1, 2]

    data = client.get('/api/calendar-events?date_to=2024-02-13T00:00:00Z', headers=auth_headers).get_json()['data']
    assert [e['id'] for e in data] == [2]


def test_stats(client, auth_headers):
    _event(client, auth_headers, datetime.utcnow() + timedelta(days=1), priority='critical')
    stats = client.get('/api/calendar-events/stats', headers=auth_headers).get_json()['data']
    assert stats['total_events'] == 3
    assert stats['upcoming_events'] == 1
    assert stats['overdue_events'] == 1
    assert stats['completed_events'] == 0
    assert stats['critical_events'] == 1
    assert stats['by_type']['hearing'] == 1
    assert stats['by_type']['consultation'] == 1


def test_ics_export(client, auth_headers):
    resp = client.get('/api/calendar-events/export.ics', headers=auth_headers)
    assert resp.status_code == 200
    assert resp.mimetype == 'text/calendar'
    body = resp.get_data(as_text=True)
    assert body.startswith('BEGIN:VCALENDAR')
    assert 'SUMMARY:Contract Dispute Hearing' in body
    assert 'LOCATION:Superior Court of California\\, Room 101' in body
    assert 'DTSTART:20240215T100000Z' in body


def test_delete_and_not_found(client, auth_headers):
    assert client.delete('/api/calendar-events/2', headers=auth_headers).status_code == 200
    resp = client.get('/api/calendar-events/2', headers=auth_headers)
    assert resp.status_code == 404
    assert resp.get_json()['error']['code'] == 'EVENT_NOT_FOUND'


def test_documents_must_be_a_list(client, auth_headers):
    start = datetime.utcnow() + timedelta(days=3)
    resp = _event(client, auth_headers, start, documents='brief.pdf')
    assert resp.status_code == 400
    assert resp.get_json()['error']['code'] == 'VALIDATION_ERROR'

    resp = _event(client, auth_headers, start, documents=['brief.pdf'])
    assert resp.get_json()['data']['documents'] == ['brief.pdf']
