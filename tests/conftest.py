import datetime

import pytest

from lingodeck_app import create_app, db
from lingodeck_app.config import Config
from lingodeck_app.modules.fsrs.schemas import CardMemoryState, CardStateEnum, ModelOutcome, Rating


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_ENGINE_OPTIONS = {
        'connect_args': {'check_same_thread': False}
    }
    LOG_TO_FILE = False
    LOG_JSON = False
    FSRS_ENABLE_FUZZ = False
    DEFAULT_LEARNING_STEPS = [1, 10]
    DEFAULT_RELEARNING_STEPS = [10]


@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


NOW = datetime.datetime(2025, 2, 5, 12, 0, tzinfo=datetime.timezone.utc)


@pytest.fixture
def now():
    return NOW


class ScriptedModel:
    """
    Memory model stand-in with a fixed proposal.

    Lifecycle follows the usual FSRS rules unless ``lifecycle_state`` is given.
    """

    def __init__(self, interval_days=3.0, stability=2.5, difficulty=0.3, retrievability=0.9,
                 lifecycle_state=None):
        self.interval_days = interval_days
        self.stability = stability
        self.difficulty = difficulty
        self.retrievability = retrievability
        self.lifecycle_state = lifecycle_state
        self.calls = []

    def next_state(self, card: CardMemoryState, rating: Rating, now) -> ModelOutcome:
        self.calls.append((card, rating, now))
        state = self.lifecycle_state
        if state is None:
            if card.lifecycle_state in (CardStateEnum.NEW, CardStateEnum.LEARNING):
                state = CardStateEnum.REVIEW if rating == Rating.Easy else CardStateEnum.LEARNING
            elif card.lifecycle_state == CardStateEnum.REVIEW:
                state = CardStateEnum.RELEARNING if rating == Rating.Again else CardStateEnum.REVIEW
            else:
                state = CardStateEnum.RELEARNING
        return ModelOutcome(
            difficulty=self.difficulty,
            stability=self.stability,
            retrievability=self.retrievability,
            lifecycle_state=state,
            interval_days=self.interval_days,
        )


@pytest.fixture
def scripted_model():
    return ScriptedModel()


@pytest.fixture
def model_factory():
    return ScriptedModel
