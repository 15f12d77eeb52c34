"""Configuration module for Flask application."""
import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


class Config:
    """Base configuration class."""

    # Flask
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key-change-in-production')
    DEBUG = os.getenv('FLASK_DEBUG', '1') == '1'
    ENV = os.getenv('FLASK_ENV', 'development')

    # Database
    DATABASE_URL = os.getenv('DATABASE_URL', 'sqlite:///liveledger.db')
    SQLALCHEMY_DATABASE_URI = DATABASE_URL
    SQLALCHEMY_ECHO = os.getenv('SQLALCHEMY_ECHO', 'false').lower() == 'true'
    CREATE_TABLES = os.getenv('CREATE_TABLES', 'true').lower() == 'true'

    # Free tier limits
    FREE_ORDER_LIMIT = int(os.getenv('FREE_ORDER_LIMIT', '20'))
    FREE_EXPORT_LIMIT = int(os.getenv('FREE_EXPORT_LIMIT', '10'))

    # Analytics
    TOP_PRODUCTS_LIMIT = int(os.getenv('TOP_PRODUCTS_LIMIT', '5'))

    # Account defaults
    DEFAULT_CURRENCY = os.getenv('DEFAULT_CURRENCY', 'USD ($)')

    # Backups
    APP_VERSION = os.getenv('APP_VERSION', '1.0.0')
    BACKUP_DIR = os.getenv('BACKUP_DIR', 'backups')


class TestConfig(Config):
    """Configuration used by the test suite."""

    TESTING = True
    DEBUG = False
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    SQLALCHEMY_ECHO = False
    CREATE_TABLES = True
