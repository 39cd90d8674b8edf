import time
from typing import Any, Dict, Generator, Optional

import requests
from flask import current_app

ASSEMBLYAI_UPLOAD_URL = "https://api.assemblyai.com/v2/upload"
ASSEMBLYAI_TRANSCRIPTION_URL = "https://api.assemblyai.com/v2/transcript"

MOCK_TRANSCRIPT = (
    "Attorney: Good morning, this is a consultation call regarding the contract dispute case. "
    "Can you please state your name for the record?\n\n"
    "Client: Yes, my name is John Smith, and I'm calling about the issue with the software development contract.\n\n"
    "Attorney: Thank you, Mr. Smith. Can you please describe the nature of the dispute?\n\n"
    "Client: Well, we hired a company to develop a web application, but they failed to deliver on time "
    "and the quality was not what was promised in the contract.\n\n"
    "Attorney: I see. Do you have the original contract and any correspondence with the development company?\n\n"
    "Client: Yes, I have all the documentation. The contract clearly states the delivery date and specifications.\n\n"
    "Attorney: That's good. We'll need to review all the documentation to build a strong case. Based on what "
    "you've told me, it sounds like we may have grounds for breach of contract."
)

MOCK_SPEAKERS = [
    {
        'speaker': 'Speaker 1 (Attorney)',
        'text': 'Good morning, this is a consultation call regarding the contract dispute case...',
        'timestamp': '00:00:00',
    },
    {
        'speaker': 'Speaker 2 (Client)',
        'text': "Yes, my name is John Smith, and I'm calling about the issue...",
        'timestamp': '00:00:15',
    },
]


class TranscriptionError(Exception):
    pass


class STTProvider:
    """Interface for STT providers"""
    name = 'base'

    def transcribe(self, file_path: str, language: str = 'en', speaker_labels: bool = False) -> Dict[str, Any]:
        raise NotImplementedError


class MockProvider(STTProvider):
    """Returns a fixed consultation transcript."""
    name = 'mock'

    def transcribe(self, file_path: str, language: str = 'en', speaker_labels: bool = False) -> Dict[str, Any]:
        return {
            'text': MOCK_TRANSCRIPT,
            'speakers': [dict(s) for s in MOCK_SPEAKERS] if speaker_labels else None,
            'confidence': 0.92,
            'duration': 180,
        }


class AssemblyAIProvider(STTProvider):
    name = 'assemblyai'

    def __init__(self, api_key: Optional[str] = None, poll_interval: float = 3.0, max_polls: int = 100):
        self.api_key = api_key
        if not self.api_key:
            raise ValueError("ASSEMBLYAI_API_KEY is not set")
        self.poll_interval = poll_interval
        self.max_polls = max_polls
        self.headers_json = {
            'authorization': self.api_key,
            'content-type': 'application/json'
        }
        self.headers_upload = {
            'authorization': self.api_key
        }

    def _read_file(self, file_path: str, chunk_size: int = 5 * 1024 * 1024) -> Generator[bytes, None, None]:
        with open(file_path, 'rb') as _file:
            while True:
                data = _file.read(chunk_size)
                if not data:
                    break
                yield data

    def start(self, file_path: str, language: str = 'en', speaker_labels: bool = False) -> str:
        up = requests.post(ASSEMBLYAI_UPLOAD_URL, headers=self.headers_upload, data=self._read_file(file_path))
        up.raise_for_status()
        payload = {
            'audio_url': up.json()['upload_url'],
            'language_code': language,
            'speaker_labels': speaker_labels,
        }
        tr = requests.post(ASSEMBLYAI_TRANSCRIPTION_URL, json=payload, headers=self.headers_json)
        tr.raise_for_status()
        return tr.json()['id']

    def get_status(self, external_id: str) -> Dict[str, Any]:
        r = requests.get(f"{ASSEMBLYAI_TRANSCRIPTION_URL}/{external_id}", headers=self.headers_json)
        r.raise_for_status()
        return r.json()

    def transcribe(self, file_path: str, language: str = 'en', speaker_labels: bool = False) -> Dict[str, Any]:
        external_id = self.start(file_path, language, speaker_labels)
        for _ in range(self.max_polls):
            data = self.get_status(external_id)
            status = data.get('status')
            if status == 'completed':
                speakers = None
                if speaker_labels:
                    speakers = [
                        {
                            'speaker': f"Speaker {u.get('speaker')}",
                            'text': u.get('text'),
                            'timestamp': time.strftime('%H:%M:%S', time.gmtime((u.get('start') or 0) / 1000)),
                        }
                        for u in (data.get('utterances') or [])
                    ]
                return {
                    'text': data.get('text') or '',
                    'speakers': speakers,
                    'confidence': data.get('confidence'),
                    'duration': data.get('audio_duration'),
                }
            if status == 'error':
                raise TranscriptionError(data.get('error') or 'Transcription failed')
            time.sleep(self.poll_interval)
        raise TranscriptionError(f"Transcription {external_id} did not complete in time")


class STTService:
    """Factory to get the configured STT provider"""
    def __init__(self, provider_name: Optional[str] = None):
        name = (provider_name or current_app.config.get('STT_PROVIDER') or 'mock').lower()
        if name == 'mock':
            self.provider = MockProvider()
        elif name == 'assemblyai':
            self.provider = AssemblyAIProvider(api_key=current_app.config.get('ASSEMBLYAI_API_KEY'))
        else:
            raise ValueError(f"Unsupported STT provider: {name}")

    def transcribe(self, file_path: str, language: str = 'en', speaker_labels: bool = False) -> Dict[str, Any]:
        return self.provider.transcribe(file_path, language=language, speaker_labels=speaker_labels)
