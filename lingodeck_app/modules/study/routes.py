from flask import Blueprint, request

from lingodeck_app.core.error_handlers import ValidationError, success_response
from .services.session_service import StudySessionService

study_bp = Blueprint('study', __name__)


def _json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object')
    return data


@study_bp.route('/sessions', methods=['POST'])
def start_session():
    """
    Start a study session.
    Input: { "deck_id": int, "limit": int (optional) }
    """
    data = _json_body()
    deck_id = data.get('deck_id')
    if not isinstance(deck_id, int):
        raise ValidationError('deck_id is required', errors={'deck_id': deck_id})

    session = StudySessionService.start_session(deck_id, limit=data.get('limit'))
    return success_response(session.to_dict(), message='Study session started'), 201


@study_bp.route('/sessions/<int:session_id>', methods=['GET'])
def get_session(session_id):
    return success_response(StudySessionService.get_session(session_id).to_dict())


@study_bp.route('/sessions/<int:session_id>/answers', methods=['POST'])
def answer(session_id):
    """
    Answer the session's current card.
    Input: { "card_id": int, "rating": int (1-4), "response_time_ms": int (optional) }
    """
    data = _json_body()
    card_id = data.get('card_id')
    rating = data.get('rating')
    if card_id is None or rating is None:
        raise ValidationError('card_id and rating are required')

    session = StudySessionService.answer(
        session_id,
        card_id=card_id,
        rating=rating,
        response_time_ms=data.get('response_time_ms'),
    )
    return success_response(session.to_dict())


@study_bp.route('/sessions/<int:session_id>/complete', methods=['POST'])
def complete(session_id):
    session = StudySessionService.complete_session(session_id)
    return success_response(session.to_dict(), message='Study session completed')
