"""
Tests for StatsService and the /api/stats endpoints.
"""

import datetime

import pytest

from lingodeck_app import db
from lingodeck_app.core.error_handlers import NotFoundError, ValidationError
from lingodeck_app.modules.decks.models import CardReview
from lingodeck_app.modules.decks.services.deck_service import DeckService
from lingodeck_app.modules.stats.logics.time_logic import TimeLogic
from lingodeck_app.modules.stats.services.stats_service import StatsService
from lingodeck_app.modules.study.models import StudySession

HOUR = datetime.timedelta(hours=1)
DAY = datetime.timedelta(days=1)


def log_review(card, rating, reviewed_at, response_time_ms=None):
    db.session.add(CardReview(
        card_id=card.card_id,
        deck_id=card.deck_id,
        rating=rating,
        response_time_ms=response_time_ms,
        reviewed_at=reviewed_at,
        state_before=0,
        state_after=1,
        stability=1.0,
        difficulty=0.5,
    ))


def log_session(deck, started_at, seconds, cards_reviewed, correct_responses):
    session = StudySession(
        deck_id=deck.deck_id,
        started_at=started_at,
        ended_at=started_at + datetime.timedelta(seconds=seconds),
        duration_seconds=seconds,
        cards_reviewed=cards_reviewed,
        correct_responses=correct_responses,
        status=StudySession.STATUS_COMPLETED,
    )
    db.session.add(session)
    return session


def seed(now):
    """Two decks, four reviews in the last three days and one long ago."""
    spanish = DeckService.create_deck({'name': 'Spanish'})
    german = DeckService.create_deck({'name': 'German'})
    uno = DeckService.create_card(spanish.deck_id, {'front': 'uno', 'back': 'one'})
    dos = DeckService.create_card(spanish.deck_id, {'front': 'dos', 'back': 'two'})
    eins = DeckService.create_card(german.deck_id, {'front': 'eins', 'back': 'one'})

    log_review(uno, 3, now - HOUR, 800)
    log_review(uno, 1, now - 2 * HOUR, 1500)
    log_review(dos, 4, now - DAY - 1.5 * HOUR, 2500)
    log_review(eins, 2, now - 2 * DAY - 3 * HOUR, 6000)
    log_review(eins, 3, now - 40 * DAY)

    log_session(spanish, now - 2 * HOUR, 600, cards_reviewed=2, correct_responses=1)
    log_session(german, now - 2 * DAY - 3 * HOUR, 180, cards_reviewed=1, correct_responses=0)
    db.session.commit()
    return spanish, german


class TestTimeLogic:

    def test_day_streak_counts_back_from_latest_day(self):
        days = [datetime.date(2025, 2, 5), datetime.date(2025, 2, 4), datetime.date(2025, 2, 1)]
        assert TimeLogic.day_streak(days) == 2

    def test_day_streak_without_reviews(self):
        assert TimeLogic.day_streak([]) == 0

    @pytest.mark.parametrize('ms, bucket', [
        (0, '< 1s'), (999, '< 1s'), (1000, '1-2s'), (2999, '2-3s'), (4999, '3-5s'), (5000, '5s+'),
    ])
    def test_response_bucket(self, ms, bucket):
        assert TimeLogic.response_bucket(ms) == bucket

    def test_window_start_is_naive_utc(self, now):
        local = now.astimezone(datetime.timezone(datetime.timedelta(hours=-5)))
        assert TimeLogic.window_start(1, local) == datetime.datetime(2025, 2, 4, 12, 0)


class TestOverview:

    def test_lifetime_totals(self, app, now):
        seed(now)

        overview = StatsService.get_overview()

        assert overview == {
            'total_cards': 3,
            'total_reviews': 5,
            'study_time_minutes': 13,
            'day_streak': 3,
            'accuracy': 60.0,
            'avg_response_time': 2.7,
            'review_rate': 20.0,
        }

    def test_single_deck(self, app, now):
        spanish, _ = seed(now)

        overview = StatsService.get_overview(deck_id=spanish.deck_id)

        assert overview['total_cards'] == 2
        assert overview['total_reviews'] == 3
        assert overview['accuracy'] == 66.7
        assert overview['review_rate'] == 33.3
        assert overview['avg_response_time'] == 1.6
        assert overview['day_streak'] == 2
        assert overview['study_time_minutes'] == 10

    def test_empty(self, app):
        overview = StatsService.get_overview()
        assert overview['total_reviews'] == 0
        assert overview['accuracy'] == 0.0
        assert overview['avg_response_time'] == 0.0
        assert overview['day_streak'] == 0

    def test_unknown_deck(self, app):
        with pytest.raises(NotFoundError):
            StatsService.get_overview(deck_id=404)


class TestActivity:

    def test_hourly_activity_skips_old_reviews(self, app, now):
        seed(now)

        hourly = StatsService.get_hourly_activity(days_back=30, now=now)

        assert hourly == [
            {'hour_of_day': 9, 'cards_reviewed': 1},
            {'hour_of_day': 10, 'cards_reviewed': 2},
            {'hour_of_day': 11, 'cards_reviewed': 1},
        ]

    def test_daily_activity(self, app, now):
        seed(now)

        daily = StatsService.get_daily_activity(days_back=30, now=now)

        assert daily == [
            {'date': '2025-02-03', 'cards_reviewed': 1, 'study_minutes': 3, 'accuracy': 0.0},
            {'date': '2025-02-04', 'cards_reviewed': 1, 'study_minutes': 0, 'accuracy': 100.0},
            {'date': '2025-02-05', 'cards_reviewed': 1, 'study_minutes': 10, 'accuracy': 50.0},
        ]

    def test_short_window(self, app, now):
        seed(now)
        daily = StatsService.get_daily_activity(days_back=1, now=now)
        assert [row['date'] for row in daily] == ['2025-02-05']

    @pytest.mark.parametrize('days_back', [0, -3, 366, 2.5, True])
    def test_invalid_window(self, app, now, days_back):
        with pytest.raises(ValidationError):
            StatsService.get_hourly_activity(days_back=days_back, now=now)


class TestDistributions:

    def test_response_distribution_in_bucket_order(self, app, now):
        seed(now)

        distribution = StatsService.get_response_distribution(days_back=30, now=now)

        assert distribution == [
            {'response_bucket': '< 1s', 'count': 1},
            {'response_bucket': '1-2s', 'count': 1},
            {'response_bucket': '2-3s', 'count': 1},
            {'response_bucket': '3-5s', 'count': 0},
            {'response_bucket': '5s+', 'count': 1},
        ]

    def test_rating_distribution(self, app, now):
        spanish, _ = seed(now)

        ratings = StatsService.get_rating_distribution(days_back=30, deck_id=spanish.deck_id, now=now)

        assert [(row['label'], row['count']) for row in ratings] == [
            ('Again', 1), ('Hard', 0), ('Good', 1), ('Easy', 1),
        ]
        assert ratings[0]['percent'] == 33.3


class TestRecentActivity:

    def test_latest_sessions_first(self, app, now):
        seed(now)

        recent = StatsService.get_recent_activity(limit=5)

        assert [row['deck_name'] for row in recent] == ['Spanish', 'German']
        assert recent[0]['accuracy'] == 50
        assert recent[0]['study_minutes'] == 10
        assert recent[1]['accuracy'] == 0
        assert recent[1]['study_minutes'] == 3

    def test_limit(self, app, now):
        seed(now)
        assert len(StatsService.get_recent_activity(limit=1)) == 1

    def test_active_session_has_no_minutes(self, app, now):
        deck = DeckService.create_deck({'name': 'Italian'})
        db.session.add(StudySession(deck_id=deck.deck_id, started_at=now))
        db.session.commit()

        row = StatsService.get_recent_activity()[0]

        assert row['status'] == StudySession.STATUS_ACTIVE
        assert row['study_minutes'] == 0
        assert row['accuracy'] == 0


class TestStatsApi:

    def test_overview(self, client):
        seed(datetime.datetime.now(datetime.timezone.utc))

        response = client.get('/api/stats/overview')

        assert response.status_code == 200
        assert response.get_json()['data']['total_reviews'] == 5

    def test_windowed_endpoints(self, client):
        seed(datetime.datetime.now(datetime.timezone.utc))

        hourly = client.get('/api/stats/activity/hourly?days_back=30').get_json()['data']
        daily = client.get('/api/stats/activity/daily').get_json()['data']
        responses = client.get('/api/stats/responses').get_json()['data']
        ratings = client.get('/api/stats/ratings?days_back=7').get_json()['data']

        assert sum(row['cards_reviewed'] for row in hourly) == 4
        assert sum(row['cards_reviewed'] for row in daily) >= 3
        assert sum(row['count'] for row in responses) == 4
        assert sum(row['count'] for row in ratings) == 4

    def test_recent(self, client):
        seed(datetime.datetime.now(datetime.timezone.utc))

        data = client.get('/api/stats/recent?limit=1').get_json()['data']

        assert len(data) == 1
        assert data[0]['deck_name'] == 'Spanish'

    def test_bad_query_args(self, client):
        assert client.get('/api/stats/activity/daily?days_back=abc').status_code == 400
        assert client.get('/api/stats/activity/daily?days_back=0').status_code == 400
        assert client.get('/api/stats/recent?limit=0').status_code == 400

    def test_unknown_deck(self, client):
        response = client.get('/api/stats/overview?deck_id=999')
        assert response.status_code == 404
        assert response.get_json()['code'] == 'NOT_FOUND'
