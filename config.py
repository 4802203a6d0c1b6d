# Room Cleaning Tracker Configuration

import logging
import os
from datetime import timedelta
from logging.handlers import RotatingFileHandler
from pathlib import Path

# Base directory
BASE_DIR = Path(__file__).parent.absolute()


def _env_flag(name, default='false'):
    return os.environ.get(name, default).lower() in ['true', 'on', '1']


class Config:
    """Base configuration class"""

    # Flask Configuration
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'cleanscan-secret-key-change-me'

    # Database Configuration
    DATABASE_PATH = os.environ.get('DATABASE_PATH') or str(BASE_DIR / 'database' / 'cleanscan.db')
    SEED_DEFAULT_DATA = _env_flag('SEED_DEFAULT_DATA')

    # Origin printed into room QR codes; the request host is used when unset
    PUBLIC_ORIGIN = os.environ.get('PUBLIC_ORIGIN')

    # QR Code Configuration
    QR_CODE_WIDTH = 200
    QR_CODE_MARGIN = 1
    QR_FILL_COLOR = '#000000'
    QR_BACK_COLOR = '#FFFFFF'
    QR_SHEET_COLUMNS = 3
    QR_SHEET_ROWS = 4
    QR_PREVIEW_COUNT = 12
    QR_PREVIEW_WIDTH = 100

    # Export Configuration
    EXPORT_DATE_FORMAT = '%Y-%m-%d'
    EXPORT_TIME_FORMAT = '%H:%M:%S'

    # Session Configuration
    PERMANENT_SESSION_LIFETIME = timedelta(hours=8)
    SESSION_COOKIE_SECURE = False  # Set to True in production with HTTPS
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = 'Lax'

    # Logging Configuration
    LOG_LEVEL = os.environ.get('LOG_LEVEL') or 'INFO'
    LOG_FILE = BASE_DIR / 'logs' / 'cleanscan.log'
    LOG_MAX_BYTES = 10 * 1024 * 1024  # 10MB
    LOG_BACKUP_COUNT = 5

    DEBUG = _env_flag('DEBUG')
    TESTING = False

    @classmethod
    def init_app(cls, app):
        """Initialize application configuration"""
        app.config.from_object(cls)


class DevelopmentConfig(Config):
    """Development configuration"""
    DEBUG = True
    SEED_DEFAULT_DATA = True
    DATABASE_PATH = os.environ.get('DATABASE_PATH') or str(BASE_DIR / 'database' / 'cleanscan_dev.db')
    LOG_LEVEL = 'DEBUG'


class TestingConfig(Config):
    """Testing configuration"""
    TESTING = True
    DEBUG = True
    SECRET_KEY = 'testing-secret-key'
    SEED_DEFAULT_DATA = False
    PUBLIC_ORIGIN = 'http://cleanscan.test'


class ProductionConfig(Config):
    """Production configuration"""
    DEBUG = False
    SESSION_COOKIE_SECURE = True  # Requires HTTPS
    LOG_LEVEL = 'WARNING'

    @classmethod
    def init_app(cls, app):
        super().init_app(app)

        if not app.debug:
            Path(cls.LOG_FILE).parent.mkdir(parents=True, exist_ok=True)
            file_handler = RotatingFileHandler(
                cls.LOG_FILE,
                maxBytes=cls.LOG_MAX_BYTES,
                backupCount=cls.LOG_BACKUP_COUNT
            )
            file_handler.setFormatter(logging.Formatter(
                '%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]'
            ))
            file_handler.setLevel(logging.INFO)
            app.logger.addHandler(file_handler)

            app.logger.setLevel(logging.INFO)
            app.logger.info('Room cleaning tracker startup')


# Configuration dictionary
config = {
    'development': DevelopmentConfig,
    'testing': TestingConfig,
    'production': ProductionConfig,
    'default': DevelopmentConfig
}


def get_config():
    """Get configuration based on environment variable"""
    return config.get(os.environ.get('FLASK_ENV', 'default'), DevelopmentConfig)


def validate_config(app):
    """Validate configuration settings"""
    errors = []

    if not app.config.get('SECRET_KEY'):
        errors.append("SECRET_KEY must be set")

    if not app.config.get('DATABASE_PATH'):
        errors.append("DATABASE_PATH must be set")

    for key in ('QR_CODE_WIDTH', 'QR_SHEET_COLUMNS', 'QR_SHEET_ROWS'):
        if int(app.config.get(key) or 0) <= 0:
            errors.append(f"{key} must be a positive integer")

    if int(app.config.get('QR_CODE_MARGIN', 0)) < 0:
        errors.append("QR_CODE_MARGIN must not be negative")

    origin = app.config.get('PUBLIC_ORIGIN')
    if origin and not origin.startswith(('http://', 'https://')):
        errors.append(f"PUBLIC_ORIGIN must start with http:// or https://: {origin}")

    return errors


def init_config(app, config_name=None, overrides=None):
    """Initialize application with configuration"""
    if config_name is None:
        config_name = os.environ.get('FLASK_ENV', 'default')

    config_class = config.get(config_name, DevelopmentConfig)
    config_class.init_app(app)
    if overrides:
        app.config.update(overrides)

    errors = validate_config(app)
    if errors:
        for error in errors:
            app.logger.error(f"Configuration error: {error}")
        raise RuntimeError("Configuration validation failed")

    return config_class
