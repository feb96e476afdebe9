from flask import Blueprint, request

from lingodeck_app.core.error_handlers import ValidationError, success_response
from lingodeck_app.modules.fsrs.services.scheduler_service import SchedulerService

api_bp = Blueprint('fsrs_api', __name__)


@api_bp.route('/review', methods=['POST'])
def process_review():
    """
    Process a card review.
    Input: {
        "card_id": int,
        "rating": int (1-4),
        "response_time_ms": int (optional)
    }
    Scheduler errors are rendered by the app-wide FSRSError handler.
    """
    data = request.get_json(silent=True)
    if not data:
        raise ValidationError('No input data provided')

    card_id = data.get('card_id')
    rating = data.get('rating')
    if card_id is None or rating is None:
        raise ValidationError('card_id and rating are required')

    card, review = SchedulerService.review_card(
        card_id=card_id,
        rating=rating,
        response_time_ms=data.get('response_time_ms'),
    )
    return success_response({
        'card': card.to_dict(),
        'review': review.to_dict(),
    }, message='Review processed successfully'), 200


@api_bp.route('/preview/<int:card_id>', methods=['GET'])
def preview_intervals(card_id):
    """
    Get preview intervals for a specific card.
    Output: { "card_id": ..., "retention": float, "previews": { "1": {...}, ..., "4": {...} } }
    """
    previews = SchedulerService.preview_intervals(card_id)
    return success_response({
        'card_id': card_id,
        'retention': round(SchedulerService.current_retention(card_id) * 100, 1),
        'previews': previews,
    }), 200
