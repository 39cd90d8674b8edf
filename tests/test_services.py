from datetime import datetime, timedelta

import pytest

from caseclerk.models import db, CalendarEvent
from caseclerk.services import ai
from caseclerk.services.scheduler import check_event_reminders, run_later
from caseclerk.services.stt import AssemblyAIProvider, MockProvider, STTService, TranscriptionError


class FakeResponse:
    def __init__(self, payload):
        self.payload = payload

    def raise_for_status(self):
        return None

    def json(self):
        return self.payload


def test_reminders_are_dispatched_once(app):
    with app.app_context():
        now = datetime.utcnow()
        event = CalendarEvent(
            title='Deposition of J. Doe',
            start_time=now + timedelta(minutes=30),
            end_time=now + timedelta(minutes=90),
            status='scheduled',
            reminders=[
                {'time_before': 60, 'method': 'email', 'sent': False},
                {'time_before': 10, 'method': 'sms', 'sent': False},
            ],
            attendees=[{'name': 'J. Doe', 'email': 'jdoe@example.com', 'role': 'witness', 'required': True}],
            user_id=1,
        )
        db.session.add(event)
        db.session.commit()

        assert check_event_reminders(now) == 1
        reminders = db.session.get(CalendarEvent, event.id).reminders
        assert reminders[0]['sent'] is True
        assert reminders[1]['sent'] is False

        assert check_event_reminders(now) == 0
        assert check_event_reminders(now + timedelta(minutes=25)) == 1


def test_cancelled_and_past_events_get_no_reminders(app):
    with app.app_context():
        now = datetime.utcnow()
        db.session.add(CalendarEvent(
            title='Cancelled', start_time=now + timedelta(minutes=5), end_time=now + timedelta(minutes=65),
            status='cancelled', reminders=[{'time_before': 60, 'method': 'email', 'sent': False}], user_id=1,
        ))
        db.session.commit()
        # Seeded events are in the past
        assert check_event_reminders(now) == 0


def test_run_later_is_inline_when_eager(app):
    calls = []
    with app.app_context():
        run_later(calls.append, 5, 'done')
    assert calls == ['done']


def test_call_insights():
    insights = ai.call_insights('Client is worried about the DUI hearing tomorrow, this is urgent.')
    assert insights['sentiment'] == 'negative'
    assert insights['urgency_level'] == 'high'
    assert 'DUI' in insights['key_topics']
    assert insights['follow_up_required'] is True

    empty = ai.call_insights('')
    assert empty == {'sentiment': 'neutral', 'key_topics': [], 'follow_up_required': False, 'urgency_level': 'low'}


def test_mock_stt_provider():
    result = MockProvider().transcribe('/dev/null', speaker_labels=False)
    assert result['confidence'] == 0.92
    assert result['speakers'] is None


def test_stt_service_selects_provider(app):
    app.config['ASSEMBLYAI_API_KEY'] = None
    with app.app_context():
        assert isinstance(STTService().provider, MockProvider)
        with pytest.raises(ValueError):
            STTService('whisper')
        with pytest.raises(ValueError):
            STTService('assemblyai')


def test_assemblyai_provider_polls_until_complete(monkeypatch, tmp_path):
    audio = tmp_path / 'call.mp3'
    audio.write_bytes(b'ID3audio')
    posts = []
    statuses = iter([
        {'status': 'processing'},
        {'status': 'completed', 'text': 'Hello counsel', 'confidence': 0.9, 'audio_duration': 12,
         'utterances': [{'speaker': 'A', 'text': 'Hello counsel', 'start': 1500}]},
    ])

    def fake_post(url, **kwargs):
        posts.append(url)
        if url.endswith('/upload'):
            b''.join(kwargs['data'])
            return FakeResponse({'upload_url': 'https://cdn.example/audio'})
        assert kwargs['json']['audio_url'] == 'https://cdn.example/audio'
        return FakeResponse({'id': 'tr_1'})

    monkeypatch.setattr('caseclerk.services.stt.requests.post', fake_post)
    monkeypatch.setattr('caseclerk.services.stt.requests.get', lambda url, **kwargs: FakeResponse(next(statuses)))

    provider = AssemblyAIProvider(api_key='key', poll_interval=0)
    result = provider.transcribe(str(audio), speaker_labels=True)
    assert result['text'] == 'Hello counsel'
    assert result['duration'] == 12
    assert result['speakers'] == [{'speaker': 'Speaker A', 'text': 'Hello counsel', 'timestamp': '00:00:01'}]
    assert len(posts) == 2


def test_assemblyai_provider_surfaces_errors(monkeypatch, tmp_path):
    audio = tmp_path / 'call.mp3'
    audio.write_bytes(b'ID3audio')
    monkeypatch.setattr(
        'caseclerk.services.stt.requests.post',
        lambda url, **kwargs: FakeResponse({'upload_url': 'u', 'id': 'tr_2'}),
    )
    monkeypatch.setattr(
        'caseclerk.services.stt.requests.get',
        lambda url, **kwargs: FakeResponse({'status': 'error', 'error': 'bad audio'}),
    )
    with pytest.raises(TranscriptionError, match='bad audio'):
        AssemblyAIProvider(api_key='key', poll_interval=0).transcribe(str(audio))
