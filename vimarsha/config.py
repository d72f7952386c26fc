"""
Flask Configuration
"""
import os
from dotenv import load_dotenv

load_dotenv()

class Config:
    """Base configuration"""

    # Flask
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key-change-in-production')
    DEBUG = os.getenv('DEBUG', 'True') == 'True'
    TESTING = False

    # Identity provider + document store (Firebase project)
    FIREBASE_API_KEY = os.getenv('FIREBASE_API_KEY', '')
    FIREBASE_PROJECT_ID = os.getenv('FIREBASE_PROJECT_ID', 'track-system-free')
    # Path to the service account JSON used by the store client
    FIREBASE_CREDENTIALS = os.getenv('FIREBASE_CREDENTIALS', '')

    # Object storage (uploaded photos)
    CLOUDINARY_CLOUD_NAME = os.getenv('CLOUDINARY_CLOUD_NAME', '')
    CLOUDINARY_API_KEY = os.getenv('CLOUDINARY_API_KEY', '')
    CLOUDINARY_API_SECRET = os.getenv('CLOUDINARY_API_SECRET', '')
    CLOUDINARY_FOLDER = os.getenv('CLOUDINARY_FOLDER', 'vimarsha')

    # Base URL printed into deep links (public record page)
    PUBLIC_BASE_URL = os.getenv('PUBLIC_BASE_URL', 'http://localhost:5000')

    # Session
    SESSION_MARKER_COOKIE = '__session'
    PERMANENT_SESSION_LIFETIME = 86400  # 24 hours
    SESSION_COOKIE_HTTPONLY = True

    # Remote calls
    REQUEST_TIMEOUT = float(os.getenv('REQUEST_TIMEOUT', '10'))
    SCAN_TIMEOUT = float(os.getenv('SCAN_TIMEOUT', '8'))

    # QR rendering
    QR_MODULE_SIZE = 6
    QR_MARGIN = 2

    # File Upload
    MAX_CONTENT_LENGTH = 10 * 1024 * 1024  # 10MB max photo size
    ALLOWED_IMAGE_EXTENSIONS = {'png', 'jpg', 'jpeg', 'webp'}

    # Logging
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
    LOG_DIR = os.getenv('LOG_DIR', 'logs')
    LOG_TO_FILE = True

    # Pagination
    ITEMS_PER_PAGE = 25

class DevelopmentConfig(Config):
    """Development configuration"""
    DEBUG = True

class ProductionConfig(Config):
    """Production configuration"""
    DEBUG = False
    SESSION_COOKIE_SECURE = True

class TestingConfig(Config):
    """Test configuration (fake services are injected by the tests)"""
    TESTING = True
    DEBUG = False
    SECRET_KEY = 'test-secret-key'
    LOG_TO_FILE = False
    SCAN_TIMEOUT = 2.0

config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}
