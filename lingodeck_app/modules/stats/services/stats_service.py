"""
Study statistics computed from the review log and study sessions.

Windows are counted back from ``now`` in whole days; days and hours are
reported in UTC.
"""

from collections import defaultdict
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import case, func

from lingodeck_app.core.error_handlers import ValidationError
from lingodeck_app.core.extensions import db
from lingodeck_app.modules.decks.models import Card, CardReview, Deck
from lingodeck_app.modules.decks.services.deck_service import DeckService
from lingodeck_app.modules.fsrs.schemas import Rating
from lingodeck_app.modules.study.models import StudySession
from ..logics.time_logic import RESPONSE_BUCKETS, TimeLogic

DEFAULT_DAYS_BACK = 30
MAX_DAYS_BACK = 365
CORRECT_RATINGS = (int(Rating.Good), int(Rating.Easy))


def _percent(part, whole, digits=1) -> float:
    if not whole:
        return 0.0
    return round(part / whole * 100, digits)


def _checked_days_back(days_back) -> int:
    if isinstance(days_back, bool) or not isinstance(days_back, int) or not 1 <= days_back <= MAX_DAYS_BACK:
        raise ValidationError(
            f'days_back must be an integer from 1 to {MAX_DAYS_BACK}',
            errors={'days_back': days_back},
        )
    return days_back


class StatsService:
    """Read-only aggregates over card_reviews and study_sessions."""

    @staticmethod
    def _scoped(query, model, deck_id: Optional[int]):
        if deck_id is None:
            return query
        DeckService.get_deck(deck_id)
        return query.filter(model.deck_id == deck_id)

    @staticmethod
    def _recent_reviews(days_back: int, deck_id: Optional[int], now: Optional[datetime]):
        since = TimeLogic.window_start(_checked_days_back(days_back), now)
        query = CardReview.query.filter(CardReview.reviewed_at >= since)
        return StatsService._scoped(query, CardReview, deck_id)

    @staticmethod
    def get_overview(deck_id: Optional[int] = None) -> Dict[str, Any]:
        """
        Lifetime totals: cards, reviews, study time, streak, accuracy,
        average response time and the share of Again answers.
        """
        total_cards = StatsService._scoped(Card.query, Card, deck_id).count()

        totals = StatsService._scoped(
            db.session.query(
                func.count(CardReview.review_id).label('total'),
                func.sum(case((CardReview.rating.in_(CORRECT_RATINGS), 1), else_=0)).label('correct'),
                func.sum(case((CardReview.rating == int(Rating.Again), 1), else_=0)).label('again'),
                func.avg(CardReview.response_time_ms).label('avg_response_ms'),
            ),
            CardReview,
            deck_id,
        ).one()
        total_reviews = int(totals.total or 0)

        study_seconds = StatsService._scoped(
            db.session.query(func.sum(StudySession.duration_seconds)),
            StudySession,
            deck_id,
        ).scalar() or 0

        review_times = StatsService._scoped(db.session.query(CardReview.reviewed_at), CardReview, deck_id)
        study_dates = {TimeLogic.to_utc(reviewed_at).date() for (reviewed_at,) in review_times}

        avg_response_ms = totals.avg_response_ms
        return {
            'total_cards': total_cards,
            'total_reviews': total_reviews,
            'study_time_minutes': int(study_seconds // 60),
            'day_streak': TimeLogic.day_streak(study_dates),
            'accuracy': _percent(int(totals.correct or 0), total_reviews),
            'avg_response_time': round(float(avg_response_ms) / 1000, 1) if avg_response_ms is not None else 0.0,
            'review_rate': _percent(int(totals.again or 0), total_reviews),
        }

    @staticmethod
    def get_hourly_activity(
        days_back: int = DEFAULT_DAYS_BACK,
        deck_id: Optional[int] = None,
        now: Optional[datetime] = None
    ) -> List[Dict[str, int]]:
        """Reviews per hour of day (UTC), hours without reviews left out."""
        counts = defaultdict(int)
        for review in StatsService._recent_reviews(days_back, deck_id, now):
            counts[TimeLogic.to_utc(review.reviewed_at).hour] += 1
        return [
            {'hour_of_day': hour, 'cards_reviewed': counts[hour]}
            for hour in sorted(counts)
        ]

    @staticmethod
    def get_daily_activity(
        days_back: int = DEFAULT_DAYS_BACK,
        deck_id: Optional[int] = None,
        now: Optional[datetime] = None
    ) -> List[Dict[str, Any]]:
        """
        One row per day with reviews: distinct cards reviewed, accuracy and
        minutes spent in study sessions started that day.
        """
        reviews_by_day = defaultdict(list)
        for review in StatsService._recent_reviews(days_back, deck_id, now):
            reviews_by_day[TimeLogic.to_utc(review.reviewed_at).date()].append(review)

        since = TimeLogic.window_start(days_back, now)
        sessions = StatsService._scoped(
            StudySession.query.filter(StudySession.started_at >= since), StudySession, deck_id
        )
        seconds_by_day = defaultdict(int)
        for session in sessions:
            seconds_by_day[TimeLogic.to_utc(session.started_at).date()] += session.duration_seconds or 0

        activity = []
        for day in sorted(reviews_by_day):
            reviews = reviews_by_day[day]
            correct = sum(1 for review in reviews if review.rating in CORRECT_RATINGS)
            activity.append({
                'date': day.isoformat(),
                'cards_reviewed': len({review.card_id for review in reviews}),
                'study_minutes': int(round(seconds_by_day[day] / 60)),
                'accuracy': _percent(correct, len(reviews)),
            })
        return activity

    @staticmethod
    def get_response_distribution(
        days_back: int = DEFAULT_DAYS_BACK,
        deck_id: Optional[int] = None,
        now: Optional[datetime] = None
    ) -> List[Dict[str, Any]]:
        """Timed reviews grouped into response-time buckets, in bucket order."""
        counts = defaultdict(int)
        reviews = StatsService._recent_reviews(days_back, deck_id, now).filter(
            CardReview.response_time_ms.isnot(None)
        )
        for review in reviews:
            counts[TimeLogic.response_bucket(review.response_time_ms)] += 1
        return [
            {'response_bucket': label, 'count': counts[label]}
            for label, _ in RESPONSE_BUCKETS
        ]

    @staticmethod
    def get_rating_distribution(
        days_back: int = DEFAULT_DAYS_BACK,
        deck_id: Optional[int] = None,
        now: Optional[datetime] = None
    ) -> List[Dict[str, Any]]:
        rows = (
            StatsService._recent_reviews(days_back, deck_id, now)
            .with_entities(CardReview.rating, func.count(CardReview.review_id))
            .group_by(CardReview.rating)
            .all()
        )
        counts = {int(rating): int(count) for rating, count in rows}
        total = sum(counts.values())
        return [
            {
                'rating': int(rating),
                'label': rating.name,
                'count': counts.get(int(rating), 0),
                'percent': _percent(counts.get(int(rating), 0), total),
            }
            for rating in Rating
        ]

    @staticmethod
    def get_recent_activity(limit: int = 5, deck_id: Optional[int] = None) -> List[Dict[str, Any]]:
        """The latest study sessions with their deck name, accuracy and minutes spent."""
        if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
            raise ValidationError('limit must be a positive integer', errors={'limit': limit})

        query = StatsService._scoped(
            db.session.query(StudySession, Deck.name).join(Deck, Deck.deck_id == StudySession.deck_id),
            StudySession,
            deck_id,
        )
        rows = (
            query.order_by(StudySession.started_at.desc(), StudySession.session_id.desc())
            .limit(limit)
            .all()
        )

        activity = []
        for session, deck_name in rows:
            if session.duration_seconds is not None:
                seconds = session.duration_seconds
            elif session.ended_at is not None:
                seconds = (TimeLogic.to_utc(session.ended_at) - TimeLogic.to_utc(session.started_at)).total_seconds()
            else:
                seconds = 0
            activity.append({
                'session_id': session.session_id,
                'deck_id': session.deck_id,
                'deck_name': deck_name,
                'status': session.status,
                'cards_reviewed': session.cards_reviewed,
                'accuracy': int(round(_percent(session.correct_responses, session.cards_reviewed))),
                'study_minutes': int(round(seconds / 60)),
                'started_at': session.started_at.isoformat() if session.started_at else None,
            })
        return activity
