from .deck_service import DeckService, step_config_for

__all__ = ['DeckService', 'step_config_for']
