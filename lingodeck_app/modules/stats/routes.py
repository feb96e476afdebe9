from flask import Blueprint, request

from lingodeck_app.core.error_handlers import ValidationError, success_response
from .services.stats_service import DEFAULT_DAYS_BACK, StatsService

stats_bp = Blueprint('stats', __name__)


def _int_arg(name: str, default=None):
    raw = request.args.get(name)
    if raw is None or raw == '':
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValidationError(f'{name} must be an integer', errors={name: raw}) from None


def _window_args() -> dict:
    return {
        'days_back': _int_arg('days_back', DEFAULT_DAYS_BACK),
        'deck_id': _int_arg('deck_id'),
    }


@stats_bp.route('/overview', methods=['GET'])
def overview():
    """
    Lifetime totals.
    Query: deck_id (optional)
    """
    return success_response(StatsService.get_overview(deck_id=_int_arg('deck_id')))


@stats_bp.route('/activity/hourly', methods=['GET'])
def hourly_activity():
    """Query: days_back (default 30), deck_id (optional)"""
    return success_response(StatsService.get_hourly_activity(**_window_args()))


@stats_bp.route('/activity/daily', methods=['GET'])
def daily_activity():
    """Query: days_back (default 30), deck_id (optional)"""
    return success_response(StatsService.get_daily_activity(**_window_args()))


@stats_bp.route('/responses', methods=['GET'])
def response_distribution():
    return success_response(StatsService.get_response_distribution(**_window_args()))


@stats_bp.route('/ratings', methods=['GET'])
def rating_distribution():
    return success_response(StatsService.get_rating_distribution(**_window_args()))


@stats_bp.route('/recent', methods=['GET'])
def recent_activity():
    """Query: limit (default 5), deck_id (optional)"""
    return success_response(
        StatsService.get_recent_activity(limit=_int_arg('limit', 5), deck_id=_int_arg('deck_id'))
    )
