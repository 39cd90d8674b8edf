from datetime import datetime

from flask_login import UserMixin
from flask_sqlalchemy import SQLAlchemy
from werkzeug.security import generate_password_hash, check_password_hash

db = SQLAlchemy()

LICENSE_LEVELS = ('student', 'pro_per', 'paralegal', 'attorney', 'firm_admin')
STORAGE_LOCATIONS = ('local', 'vps', 'cloud')
API_KEY_PROVIDERS = ('openai', 'anthropic', 'vonage', 'elevenlabs')

CASE_STATUSES = ('active', 'pending', 'closed', 'appealed', 'settled')
CASE_TYPES = ('civil', 'criminal', 'family', 'probate', 'bankruptcy', 'administrative')
CASE_PRIORITIES = ('low', 'medium', 'high', 'urgent')

DOCUMENT_TYPES = ('motion', 'order', 'complaint', 'discovery', 'correspondence', 'other')
DOCUMENT_STATUSES = ('uploading', 'processing', 'completed', 'failed')

CALL_STATUSES = ('initiated', 'ringing', 'answered', 'completed', 'failed', 'busy', 'no_answer')
CALL_PURPOSES = ('client_consultation', 'court_call', 'witness_interview', 'opposing_counsel', 'other')

EVENT_TYPES = ('hearing', 'deposition', 'meeting', 'deadline', 'court_date', 'consultation', 'other')
EVENT_PRIORITIES = ('low', 'medium', 'high', 'critical')
EVENT_STATUSES = ('scheduled', 'confirmed', 'cancelled', 'completed', 'rescheduled')
REMINDER_METHODS = ('email', 'sms', 'notification')


def default_preferences():
    return {
        'notifications': {
            'email_enabled': True,
            'sms_enabled': False,
            'push_enabled': True,
            'reminder_time': 30,
        },
        'ui_preferences': {
            'theme': 'light',
            'language': 'en',
            'timezone': 'America/Los_Angeles',
            'date_format': 'MM/dd/yyyy',
            'time_format': '12h',
        },
    }


def default_feature_flags():
    return {'ai_calling': False, 'legal_research': True, 'advanced_analytics': False}


def role_for_license(license_level):
    return 'attorney' if license_level == 'attorney' else 'user'


def isoformat(value):
    """Serialize a naive UTC datetime the way API clients expect it."""
    if value is None:
        return None
    return value.replace(microsecond=0).isoformat() + 'Z'


def mask_secret(value):
    if not value:
        return value
    return '***' + str(value)[-4:]


class TimestampMixin:
    created_date = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_date = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class User(UserMixin, TimestampMixin, db.Model):
    """Account holder; also carries the onboarding profile."""
    __tablename__ = 'user'

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(120), unique=True, nullable=False)
    password_hash = db.Column(db.String(256), nullable=False)
    full_name = db.Column(db.String(120), nullable=False)
    role = db.Column(db.String(20), default='user')  # 'attorney', 'user'
    bar_number = db.Column(db.String(50))
    license_level = db.Column(db.String(20), default='attorney')
    firm_name = db.Column(db.String(200))
    firm_address = db.Column(db.String(300))
    phone_primary = db.Column(db.String(30))
    phone_secondary = db.Column(db.String(30))
    website = db.Column(db.String(200))
    default_jurisdiction = db.Column(db.String(200))
    default_court = db.Column(db.String(200))
    storage_location = db.Column(db.String(20), default='local')
    api_keys = db.Column(db.JSON, default=dict)
    feature_flags = db.Column(db.JSON, default=default_feature_flags)
    preferences = db.Column(db.JSON, default=default_preferences)
    onboarding_completed = db.Column(db.Boolean, default=False)
    is_active = db.Column(db.Boolean, default=True)

    cases = db.relationship('Case', back_populates='user', lazy='dynamic')

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        return check_password_hash(self.password_hash, password)

    def masked_api_keys(self):
        return {k: mask_secret(v) for k, v in (self.api_keys or {}).items()}

    def summary_dict(self):
        return {
            'id': self.id,
            'email': self.email,
            'full_name': self.full_name,
            'role': self.role,
            'onboarding_completed': bool(self.onboarding_completed),
        }

    def to_dict(self):
        return {
            'id': self.id,
            'email': self.email,
            'full_name': self.full_name,
            'role': self.role,
            'bar_number': self.bar_number,
            'license_level': self.license_level,
            'firm_name': self.firm_name,
            'firm_address': self.firm_address,
            'phone_primary': self.phone_primary,
            'phone_secondary': self.phone_secondary,
            'website': self.website,
            'default_jurisdiction': self.default_jurisdiction,
            'default_court': self.default_court,
            'storage_location': self.storage_location,
            'api_keys': self.masked_api_keys(),
            'feature_flags': self.feature_flags or {},
            'onboarding_completed': bool(self.onboarding_completed),
            'is_active': self.is_active,
            'created_date': isoformat(self.created_date),
            'updated_date': isoformat(self.updated_date),
        }


class Case(TimestampMixin, db.Model):
    __tablename__ = 'case'

    id = db.Column(db.Integer, primary_key=True)
    case_number = db.Column(db.String(100), unique=True, nullable=False)
    title = db.Column(db.String(300), nullable=False)
    plaintiff = db.Column(db.String(200))
    defendant = db.Column(db.String(200))
    jurisdiction = db.Column(db.String(200))
    court_address = db.Column(db.String(300))
    judge = db.Column(db.String(200))
    department = db.Column(db.String(100))
    status = db.Column(db.String(20), default='active')
    case_type = db.Column(db.String(30), default='civil')
    priority = db.Column(db.String(20), default='medium')
    tags = db.Column(db.JSON, default=list)
    next_hearing = db.Column(db.DateTime)
    statute_of_limitations = db.Column(db.DateTime)
    summary = db.Column(db.Text)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=True)

    user = db.relationship('User', back_populates='cases')
    documents = db.relationship('Document', back_populates='case', lazy='dynamic')
    call_logs = db.relationship('CallLog', back_populates='case', lazy='dynamic')
    events = db.relationship('CalendarEvent', back_populates='case', lazy='dynamic')

    def to_dict(self):
        return {
            'id': self.id,
            'case_number': self.case_number,
            'title': self.title,
            'plaintiff': self.plaintiff,
            'defendant': self.defendant,
            'jurisdiction': self.jurisdiction,
            'court_address': self.court_address,
            'judge': self.judge,
            'department': self.department,
            'status': self.status,
            'case_type': self.case_type,
            'priority': self.priority,
            'tags': self.tags or [],
            'next_hearing': isoformat(self.next_hearing),
            'statute_of_limitations': isoformat(self.statute_of_limitations),
            'summary': self.summary,
            'created_date': isoformat(self.created_date),
            'updated_date': isoformat(self.updated_date),
            'user_id': self.user_id,
        }


class Document(TimestampMixin, db.Model):
    __tablename__ = 'document'

    id = db.Column(db.Integer, primary_key=True)
    case_id = db.Column(db.Integer, db.ForeignKey('case.id'), nullable=True)
    original_name = db.Column(db.String(255), nullable=False)
    file_name = db.Column(db.String(255), nullable=False)
    file_url = db.Column(db.String(500))
    file_size = db.Column(db.Integer, default=0)
    mime_type = db.Column(db.String(100))
    document_type = db.Column(db.String(30), default='other')
    status = db.Column(db.String(20), default='uploading')
    ai_summary = db.Column(db.Text)
    extracted_text = db.Column(db.Text)
    tags = db.Column(db.JSON, default=list)
    # 'metadata' is reserved on declarative models
    meta = db.Column('metadata', db.JSON, default=dict)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=True)

    case = db.relationship('Case', back_populates='documents')

    def to_dict(self):
        return {
            'id': self.id,
            'case_id': self.case_id,
            'original_name': self.original_name,
            'file_name': self.file_name,
            'file_url': self.file_url,
            'file_size': self.file_size,
            'mime_type': self.mime_type,
            'document_type': self.document_type,
            'status': self.status,
            'ai_summary': self.ai_summary,
            'extracted_text': self.extracted_text,
            'tags': self.tags or [],
            'metadata': self.meta or {},
            'created_date': isoformat(self.created_date),
            'updated_date': isoformat(self.updated_date),
            'user_id': self.user_id,
        }


class CallLog(TimestampMixin, db.Model):
    __tablename__ = 'call_log'

    id = db.Column(db.Integer, primary_key=True)
    case_id = db.Column(db.Integer, db.ForeignKey('case.id'), nullable=True)
    to_number = db.Column(db.String(30), nullable=False)
    from_number = db.Column(db.String(30), nullable=False)
    started_at = db.Column(db.DateTime, nullable=False)
    ended_at = db.Column(db.DateTime)
    duration = db.Column(db.Integer)  # seconds
    recording_url = db.Column(db.String(500))
    transcript = db.Column(db.Text)
    summary = db.Column(db.Text)
    call_status = db.Column(db.String(20), default='initiated')
    call_purpose = db.Column(db.String(30), default='other')
    notes = db.Column(db.Text)
    action_items = db.Column(db.JSON, default=list)
    participants = db.Column(db.JSON, default=list)
    ai_insights = db.Column(db.JSON)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=True)

    case = db.relationship('Case', back_populates='call_logs')

    def to_dict(self):
        return {
            'id': self.id,
            'case_id': self.case_id,
            'to_number': self.to_number,
            'from_number': self.from_number,
            'started_at': isoformat(self.started_at),
            'ended_at': isoformat(self.ended_at),
            'duration': self.duration,
            'recording_url': self.recording_url,
            'transcript': self.transcript,
            'summary': self.summary,
            'call_status': self.call_status,
            'call_purpose': self.call_purpose,
            'notes': self.notes,
            'action_items': self.action_items or [],
            'participants': self.participants or [],
            'ai_insights': self.ai_insights,
            'created_date': isoformat(self.created_date),
            'updated_date': isoformat(self.updated_date),
            'user_id': self.user_id,
        }


class CalendarEvent(TimestampMixin, db.Model):
    __tablename__ = 'calendar_event'

    id = db.Column(db.Integer, primary_key=True)
    case_id = db.Column(db.Integer, db.ForeignKey('case.id'), nullable=True)
    title = db.Column(db.String(300), nullable=False)
    description = db.Column(db.Text)
    start_time = db.Column(db.DateTime, nullable=False)
    end_time = db.Column(db.DateTime, nullable=False)
    location = db.Column(db.String(300))
    event_type = db.Column(db.String(30), default='meeting')
    priority = db.Column(db.String(20), default='medium')
    status = db.Column(db.String(20), default='scheduled')
    attendees = db.Column(db.JSON, default=list)
    reminders = db.Column(db.JSON, default=list)
    recurring = db.Column(db.JSON)
    notes = db.Column(db.Text)
    documents = db.Column(db.JSON, default=list)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=True)

    case = db.relationship('Case', back_populates='events')

    def to_dict(self):
        return {
            'id': self.id,
            'case_id': self.case_id,
            'title': self.title,
            'description': self.description,
            'start_time': isoformat(self.start_time),
            'end_time': isoformat(self.end_time),
            'location': self.location,
            'event_type': self.event_type,
            'priority': self.priority,
            'status': self.status,
            'attendees': self.attendees or [],
            'reminders': self.reminders or [],
            'recurring': self.recurring,
            'notes': self.notes,
            'documents': self.documents or [],
            'created_date': isoformat(self.created_date),
            'updated_date': isoformat(self.updated_date),
            'user_id': self.user_id,
        }
