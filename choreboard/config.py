"""Flask configuration for ChoreBoard."""

import os
from pathlib import Path


def _env_list(name: str, default: str) -> tuple:
    return tuple(item.strip() for item in os.environ.get(name, default).split(',') if item.strip())


class Config:
    """Base configuration."""

    # Flask settings
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-secret-key-change-in-production'

    # Database settings
    DATA_DIR = Path(os.environ.get('DATA_DIR', '/data'))
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or f"sqlite:///{DATA_DIR / 'choreboard.db'}"
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # APScheduler settings
    SCHEDULER_ENABLED = os.environ.get('SCHEDULER_ENABLED', 'true').lower() == 'true'
    SCHEDULER_TIMEZONE = os.environ.get('TZ', 'UTC')

    # Proof photo settings
    PHOTO_STORAGE_BACKEND = os.environ.get('PHOTO_STORAGE_BACKEND', 'local')  # 'local' or 'http'
    PHOTO_DIR = DATA_DIR / 'photos'
    PHOTO_BASE_URL = os.environ.get('PHOTO_BASE_URL', '/photos')
    PHOTO_STORAGE_URL = os.environ.get('PHOTO_STORAGE_URL')
    # Example: https://project.example.co/storage/v1
    PHOTO_STORAGE_TOKEN = os.environ.get('PHOTO_STORAGE_TOKEN')
    PHOTO_PUBLIC_URL = os.environ.get('PHOTO_PUBLIC_URL')
    PHOTO_BUCKET = os.environ.get('PHOTO_BUCKET', 'task-completion-photos')
    PHOTO_UPLOAD_TIMEOUT = int(os.environ.get('PHOTO_UPLOAD_TIMEOUT', '10'))
    MAX_PROOF_PHOTOS = int(os.environ.get('MAX_PROOF_PHOTOS', '5'))
    MAX_PHOTO_BYTES = int(os.environ.get('MAX_PHOTO_BYTES', str(5 * 1024 * 1024)))
    ALLOWED_PHOTO_TYPES = _env_list('ALLOWED_PHOTO_TYPES', 'image/jpeg,image/png,image/webp')

    # Request bodies carry up to MAX_PROOF_PHOTOS photos plus form fields
    MAX_CONTENT_LENGTH = int(os.environ.get('MAX_CONTENT_LENGTH', str(30 * 1024 * 1024)))

    # Application settings
    DEBUG = os.environ.get('DEBUG', 'false').lower() == 'true'
    TESTING = False


class DevelopmentConfig(Config):
    """Development configuration."""
    DEBUG = True
    DATA_DIR = Path(__file__).parent / 'data'
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or f"sqlite:///{DATA_DIR / 'choreboard.db'}"
    PHOTO_DIR = DATA_DIR / 'photos'


class ProductionConfig(Config):
    """Production configuration."""
    DEBUG = False
    # Re-evaluate DATA_DIR and database URI to ensure environment variable is picked up
    DATA_DIR = Path(os.environ.get('DATA_DIR', '/data'))
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or f"sqlite:///{DATA_DIR / 'choreboard.db'}"
    PHOTO_DIR = DATA_DIR / 'photos'


class TestingConfig(Config):
    """Testing configuration."""
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    # Disable scheduler during tests
    SCHEDULER_ENABLED = False
    PHOTO_STORAGE_BACKEND = 'local'
    PHOTO_DIR = None  # Falls back to DATA_DIR / 'photos'; tests point it at tmp_path


# Config dictionary for easy access
config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}
