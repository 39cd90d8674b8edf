from datetime import datetime

from flask import current_app

from .models import db, User, Case, Document, CallLog, CalendarEvent

DEMO_EMAIL = 'demo@caseclerk.ai'
DEMO_PASSWORD = 'demo123'


def _dt(value):
    return datetime.strptime(value, '%Y-%m-%dT%H:%M:%SZ')


DEMO_CASES = [
    {
        'case_number': '2024-CV-001234',
        'title': 'Smith vs. Johnson Contract Dispute',
        'plaintiff': 'John Smith',
        'defendant': 'Jane Johnson',
        'jurisdiction': 'Superior Court of California',
        'status': 'active',
        'case_type': 'civil',
        'priority': 'medium',
        'tags': ['contract', 'business'],
        'next_hearing': _dt('2024-02-15T10:00:00Z'),
        'summary': 'Contract dispute regarding software development agreement',
        'created_date': _dt('2024-01-15T10:00:00Z'),
        'updated_date': _dt('2024-01-20T14:30:00Z'),
    },
    {
        'case_number': '2024-CR-005678',
        'title': 'State vs. Williams DUI Case',
        'plaintiff': 'State of California',
        'defendant': 'Robert Williams',
        'jurisdiction': 'Municipal Court',
        'status': 'pending',
        'case_type': 'criminal',
        'priority': 'high',
        'tags': ['dui', 'criminal'],
        'next_hearing': _dt('2024-02-10T09:00:00Z'),
        'summary': 'DUI case with blood alcohol level of 0.12',
        'created_date': _dt('2024-01-10T08:00:00Z'),
        'updated_date': _dt('2024-01-18T16:45:00Z'),
    },
]


def _seed_user():
    user = User(
        email=DEMO_EMAIL,
        full_name='Demo Attorney',
        role='attorney',
        license_level='attorney',
        bar_number='123456',
        firm_name='Demo Law Firm',
        default_jurisdiction='Superior Court of California',
        onboarding_completed=True,
    )
    user.set_password(DEMO_PASSWORD)
    db.session.add(user)
    db.session.flush()
    return user


def _seed_records(user):
    cases = []
    for data in DEMO_CASES:
        case = Case(user_id=user.id, **data)
        db.session.add(case)
        cases.append(case)
    db.session.flush()
    contract_case, dui_case = cases

    db.session.add(Document(
        case_id=contract_case.id,
        original_name='contract_agreement.pdf',
        file_name='doc-1234567890-contract_agreement.pdf',
        file_url='/uploads/doc-1234567890-contract_agreement.pdf',
        file_size=2048576,
        mime_type='application/pdf',
        document_type='other',
        status='completed',
        ai_summary='Software development contract between Smith and Johnson for web application development.',
        extracted_text='This agreement is entered into between John Smith and Jane Johnson...',
        tags=['contract', 'software', 'development'],
        meta={'pages': 5, 'word_count': 1250},
        created_date=_dt('2024-01-15T10:00:00Z'),
        updated_date=_dt('2024-01-15T10:30:00Z'),
        user_id=user.id,
    ))

    db.session.add(CallLog(
        case_id=contract_case.id,
        to_number='+15551234567',
        from_number='+15559876543',
        started_at=_dt('2024-01-20T14:00:00Z'),
        ended_at=_dt('2024-01-20T14:15:00Z'),
        duration=900,
        recording_url='/recordings/call-1-20240120.mp3',
        transcript='Attorney: Good afternoon, Mr. Smith. I wanted to discuss the contract dispute case...',
        summary='Discussed contract dispute details with client. Client provided additional evidence.',
        call_status='completed',
        call_purpose='client_consultation',
        notes='Client mentioned new witness who saw the contract signing',
        action_items=[
            'Contact new witness for statement',
            'Review additional contract evidence',
            'Schedule follow-up meeting',
        ],
        participants=[
            {'name': 'John Smith', 'role': 'client', 'phone': '+15551234567'},
            {'name': 'Demo Attorney', 'role': 'attorney', 'phone': '+15559876543'},
        ],
        ai_insights={
            'sentiment': 'positive',
            'key_topics': ['contract dispute', 'witness testimony', 'evidence'],
            'follow_up_required': True,
            'urgency_level': 'medium',
        },
        created_date=_dt('2024-01-20T14:00:00Z'),
        updated_date=_dt('2024-01-20T14:16:00Z'),
        user_id=user.id,
    ))
    db.session.add(CallLog(
        case_id=dui_case.id,
        to_number='+15555551234',
        from_number='+15559876543',
        started_at=_dt('2024-01-18T10:30:00Z'),
        ended_at=_dt('2024-01-18T10:45:00Z'),
        duration=900,
        call_status='completed',
        call_purpose='client_consultation',
        notes='Initial consultation for DUI case',
        action_items=[
            'Request police report',
            'Schedule DMV hearing',
            'Gather character references',
        ],
        participants=[
            {'name': 'Robert Williams', 'role': 'client', 'phone': '+15555551234'},
        ],
        ai_insights={
            'sentiment': 'neutral',
            'key_topics': ['DUI', 'police report', 'DMV hearing'],
            'follow_up_required': True,
            'urgency_level': 'high',
        },
        created_date=_dt('2024-01-18T10:30:00Z'),
        updated_date=_dt('2024-01-18T10:46:00Z'),
        user_id=user.id,
    ))

    db.session.add(CalendarEvent(
        case_id=contract_case.id,
        title='Contract Dispute Hearing',
        description='Initial hearing for Smith vs. Johnson contract dispute',
        start_time=_dt('2024-02-15T10:00:00Z'),
        end_time=_dt('2024-02-15T11:00:00Z'),
        location='Superior Court of California, Room 101',
        event_type='hearing',
        priority='high',
        status='scheduled',
        attendees=[
            {'name': 'John Smith', 'email': 'john.smith@email.com', 'role': 'client', 'required': True},
            {'name': 'Judge Williams', 'email': None, 'role': 'judge', 'required': True},
        ],
        reminders=[
            {'time_before': 1440, 'method': 'email', 'sent': False},
            {'time_before': 60, 'method': 'notification', 'sent': False},
        ],
        notes='Bring all contract documents and evidence',
        documents=['1'],
        created_date=_dt('2024-01-15T10:00:00Z'),
        updated_date=_dt('2024-01-15T10:00:00Z'),
        user_id=user.id,
    ))
    db.session.add(CalendarEvent(
        case_id=dui_case.id,
        title='Client Consultation - Williams DUI',
        description='Initial consultation with Robert Williams regarding DUI case',
        start_time=_dt('2024-02-12T14:00:00Z'),
        end_time=_dt('2024-02-12T15:00:00Z'),
        location='Law Office Conference Room A',
        event_type='consultation',
        priority='medium',
        status='confirmed',
        attendees=[
            {'name': 'Robert Williams', 'email': 'robert.williams@email.com', 'role': 'client', 'required': True},
        ],
        reminders=[
            {'time_before': 60, 'method': 'email', 'sent': False},
        ],
        notes='Review police report and breathalyzer results',
        documents=[],
        created_date=_dt('2024-01-10T08:00:00Z'),
        updated_date=_dt('2024-01-18T16:45:00Z'),
        user_id=user.id,
    ))


def seed_demo_data():
    """Create the demo account and its sample records; no-op when it already exists."""
    if User.query.filter_by(email=DEMO_EMAIL).first() is not None:
        return False
    try:
        user = _seed_user()
        _seed_records(user)
        db.session.commit()
        current_app.logger.info(f"Seeded demo data for {DEMO_EMAIL}")
        return True
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error seeding demo data: {str(e)}")
        raise
