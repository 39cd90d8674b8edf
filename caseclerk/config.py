import os
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))


def _env_bool(name, default=False):
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


def _database_url():
    url = os.getenv('DATABASE_URL')
    if url and url.startswith('postgres://'):
        url = url.replace('postgres://', 'postgresql://', 1)
    return url or 'sqlite:///' + os.path.join(BASE_DIR, 'caseclerk.db')


class Config:
    APP_VERSION = '1.0.0'
    ENVIRONMENT = 'development'

    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-key-change-in-production')
    JWT_SECRET = os.getenv('JWT_SECRET', SECRET_KEY)
    JWT_ALGORITHM = 'HS256'
    JWT_ACCESS_EXPIRES_SECONDS = int(os.getenv('JWT_ACCESS_EXPIRES_SECONDS', 24 * 60 * 60))
    JWT_REFRESH_EXPIRES_SECONDS = int(os.getenv('JWT_REFRESH_EXPIRES_SECONDS', 7 * 24 * 60 * 60))

    SQLALCHEMY_DATABASE_URI = _database_url()
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    UPLOAD_FOLDER = os.getenv('UPLOAD_FOLDER', os.path.join(BASE_DIR, 'uploads'))
    DOCUMENT_MAX_BYTES = int(os.getenv('DOCUMENT_MAX_BYTES', 50 * 1024 * 1024))
    AUDIO_MAX_BYTES = int(os.getenv('AUDIO_MAX_BYTES', 100 * 1024 * 1024))
    # Largest request body accepted at all; per-endpoint limits are checked in the views
    MAX_CONTENT_LENGTH = int(os.getenv('MAX_CONTENT_LENGTH', 101 * 1024 * 1024))

    RATELIMIT_ENABLED = _env_bool('RATELIMIT_ENABLED', True)
    RATELIMIT_STORAGE_URI = os.getenv('RATELIMIT_STORAGE_URI', 'memory://')
    RATELIMIT_STRATEGY = 'fixed-window'
    RATELIMIT_HEADERS_ENABLED = True
    RATELIMIT_API = os.getenv('RATELIMIT_API', '100 per 15 minutes')
    RATELIMIT_LOGIN = os.getenv('RATELIMIT_LOGIN', '5 per 15 minutes')
    RATELIMIT_UPLOAD = os.getenv('RATELIMIT_UPLOAD', '10 per minute')
    RATELIMIT_AI = os.getenv('RATELIMIT_AI', '20 per minute')

    CORS_ORIGINS = [o.strip() for o in os.getenv('CORS_ORIGINS', 'http://localhost:3000').split(',') if o.strip()]

    # Background work
    SCHEDULER_ENABLED = _env_bool('SCHEDULER_ENABLED', True)
    TASKS_EAGER = _env_bool('TASKS_EAGER', False)
    AI_MOCK_DELAY_SECONDS = float(os.getenv('AI_MOCK_DELAY_SECONDS', 0))
    DOCUMENT_PROCESSING_DELAY_SECONDS = float(os.getenv('DOCUMENT_PROCESSING_DELAY_SECONDS', 2))
    DOCUMENT_REPROCESS_DELAY_SECONDS = float(os.getenv('DOCUMENT_REPROCESS_DELAY_SECONDS', 3))
    CALL_RINGING_DELAY_SECONDS = float(os.getenv('CALL_RINGING_DELAY_SECONDS', 1))

    OFFICE_PHONE_NUMBER = os.getenv('OFFICE_PHONE_NUMBER', '+15559876543')
    STT_PROVIDER = os.getenv('STT_PROVIDER', 'mock')
    ASSEMBLYAI_API_KEY = os.getenv('ASSEMBLYAI_API_KEY')

    SEED_DEMO_DATA = _env_bool('SEED_DEMO_DATA', False)
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')


class DevelopmentConfig(Config):
    DEBUG = True
    SEED_DEMO_DATA = _env_bool('SEED_DEMO_DATA', True)


class TestingConfig(Config):
    TESTING = True
    ENVIRONMENT = 'testing'
    SECRET_KEY = 'test-secret'
    JWT_SECRET = 'test-jwt-secret'
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    RATELIMIT_ENABLED = False
    SCHEDULER_ENABLED = False
    TASKS_EAGER = True
    AI_MOCK_DELAY_SECONDS = 0
    STT_PROVIDER = 'mock'
    SEED_DEMO_DATA = True
    LOG_LEVEL = 'WARNING'


class ProductionConfig(Config):
    ENVIRONMENT = 'production'
    DEBUG = False


config_by_name = {
    'development': DevelopmentConfig,
    'testing': TestingConfig,
    'production': ProductionConfig,
}


def get_config(name=None):
    name = (name or os.getenv('APP_ENV') or 'development').lower()
    return config_by_name.get(name, DevelopmentConfig)
