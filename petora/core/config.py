# petora/core/config.py

import os
from datetime import timedelta


class Config:
    """Settings shared by every environment. Values come from the environment (.env)."""
    JWT_SECRET_KEY = os.getenv('JWT_SECRET_KEY')
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(hours=1)
    JWT_REFRESH_TOKEN_EXPIRES = timedelta(days=14)
    # EventSource clients cannot set headers, so the chat stream passes ?jwt=...
    JWT_TOKEN_LOCATION = ['headers', 'query_string']

    FIREBASE_CREDENTIALS_PATH = os.getenv('FIREBASE_CREDENTIALS_PATH')
    FIREBASE_STORAGE_BUCKET = os.getenv('FIREBASE_STORAGE_BUCKET')

    OPENAI_API_KEY = os.getenv('OPENAI_API_KEY')
    OPENAI_CHAT_MODEL = os.getenv('OPENAI_CHAT_MODEL', 'gpt-4o-mini')

    PLACEHOLDER_IMAGE_URL = "https://placehold.co/600x400/E2E8F0/4A5568?text=No+Image"
    MAX_IMAGE_BYTES = 5 * 1024 * 1024
    ALLOWED_IMAGE_TYPES = ("image/jpeg", "image/jpg", "image/png", "image/webp")
    MAX_CONTENT_LENGTH = 8 * 1024 * 1024

    STREAM_HEARTBEAT_SECONDS = int(os.getenv('STREAM_HEARTBEAT_SECONDS', 15))


class DevelopmentConfig(Config):
    DEBUG = True
    FIREBASE_CREDENTIALS_PATH = os.getenv('DEV_FIREBASE_CREDENTIALS_PATH', Config.FIREBASE_CREDENTIALS_PATH)


class TestingConfig(Config):
    """Used by the pytest suite; services are injected, so no Firebase project is needed."""
    TESTING = True
    DEBUG = False
    JWT_SECRET_KEY = os.getenv('JWT_SECRET_KEY', 'petora-testing-secret-key-0123456789')
    FIREBASE_CREDENTIALS_PATH = os.getenv('TEST_FIREBASE_CREDENTIALS_PATH')
    STREAM_HEARTBEAT_SECONDS = 1


class ProductionConfig(Config):
    DEBUG = False


config_by_name = dict(
    development=DevelopmentConfig,
    testing=TestingConfig,
    production=ProductionConfig
)
