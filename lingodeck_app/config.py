# File: lingodeck_app/config.py

import os

from dotenv import load_dotenv

load_dotenv()

# config.py lives in lingodeck_app/, the project root is one level up.
BASE_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))

DATABASE_PATH = os.path.join(BASE_DIR, "database", "lingodeck.db")


def _env_bool(name, default=False):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


def _env_steps(name, default):
    value = os.environ.get(name)
    if not value:
        return list(default)
    return [int(part) for part in value.split(',') if part.strip()]


class Config:
    """Configuration for the Lingodeck application."""

    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-secret-key-replace-in-production'

    SQLALCHEMY_DATABASE_URI = os.environ.get('SQLALCHEMY_DATABASE_URI') or f'sqlite:///{DATABASE_PATH}'
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Logging
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    LOG_DIR = os.environ.get('LOG_DIR') or os.path.join(BASE_DIR, 'logs')
    LOG_JSON = _env_bool('LOG_JSON')
    LOG_TO_FILE = _env_bool('LOG_TO_FILE', True)

    # Scheduler
    FSRS_DESIRED_RETENTION = float(os.environ.get('FSRS_DESIRED_RETENTION', 0.9))
    FSRS_MAX_INTERVAL = int(os.environ.get('FSRS_MAX_INTERVAL', 36500))
    FSRS_ENABLE_FUZZ = _env_bool('FSRS_ENABLE_FUZZ', True)
    FSRS_FUZZ_THRESHOLD = float(os.environ.get('FSRS_FUZZ_THRESHOLD', 3.0))

    # Deck defaults, in minutes
    DEFAULT_LEARNING_STEPS = _env_steps('DEFAULT_LEARNING_STEPS', [1, 10])
    DEFAULT_RELEARNING_STEPS = _env_steps('DEFAULT_RELEARNING_STEPS', [10])

    DUE_CARDS_LIMIT = int(os.environ.get('DUE_CARDS_LIMIT', 20))
