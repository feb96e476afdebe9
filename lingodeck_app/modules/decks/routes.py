from datetime import datetime, timezone

from flask import Blueprint, current_app, request

from lingodeck_app.core.error_handlers import ValidationError, success_response
from lingodeck_app.modules.fsrs.engine import FSRSEngine
from lingodeck_app.modules.fsrs.services.settings_service import FSRSSettingsService
from .services.deck_service import DeckService

decks_bp = Blueprint('decks', __name__)


def _json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object')
    return data


# ------------------------------------------------------------------
# Decks
# ------------------------------------------------------------------

@decks_bp.route('/decks', methods=['GET'])
def list_decks():
    return success_response([deck.to_dict() for deck in DeckService.list_decks()])


@decks_bp.route('/decks', methods=['POST'])
def create_deck():
    deck = DeckService.create_deck(_json_body())
    return success_response(deck.to_dict(), message='Deck created'), 201


@decks_bp.route('/decks/<int:deck_id>', methods=['GET'])
def get_deck(deck_id):
    deck = DeckService.get_deck(deck_id)
    data = deck.to_dict()
    data['due'] = DeckService.count_due(deck_id)
    return success_response(data)


@decks_bp.route('/decks/<int:deck_id>', methods=['PATCH'])
def update_deck(deck_id):
    deck = DeckService.update_deck(deck_id, _json_body())
    return success_response(deck.to_dict(), message='Deck updated')


@decks_bp.route('/decks/<int:deck_id>', methods=['DELETE'])
def delete_deck(deck_id):
    DeckService.delete_deck(deck_id)
    return success_response(message='Deck deleted')


# ------------------------------------------------------------------
# Cards
# ------------------------------------------------------------------

@decks_bp.route('/decks/<int:deck_id>/cards', methods=['GET'])
def list_cards(deck_id):
    return success_response([card.to_dict() for card in DeckService.list_cards(deck_id)])


@decks_bp.route('/decks/<int:deck_id>/cards', methods=['POST'])
def create_card(deck_id):
    card = DeckService.create_card(deck_id, _json_body())
    return success_response(card.to_dict(), message='Card created'), 201


@decks_bp.route('/decks/<int:deck_id>/cards/due', methods=['GET'])
def due_cards(deck_id):
    limit = request.args.get('limit', type=int) or current_app.config.get('DUE_CARDS_LIMIT', 20)
    now = datetime.now(timezone.utc)
    cards = DeckService.get_due_cards(deck_id, limit=limit, now=now)
    engine = FSRSEngine(FSRSSettingsService.get_parameters())

    data = []
    for card in cards:
        item = card.to_dict()
        item['retention'] = round(engine.retention_at(card.memory_state(), now), 4)
        data.append(item)
    return success_response(data)


@decks_bp.route('/cards/<int:card_id>', methods=['PATCH'])
def update_card(card_id):
    card = DeckService.update_card(card_id, _json_body())
    return success_response(card.to_dict(), message='Card updated')


@decks_bp.route('/cards/<int:card_id>', methods=['DELETE'])
def delete_card(card_id):
    DeckService.delete_card(card_id)
    return success_response(message='Card deleted')
