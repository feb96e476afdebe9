module_metadata = {
    'name': 'Decks',
    'category': 'Study',
    'url_prefix': '/api',
    'enabled': True
}


def setup_module(app):
    """Load the models and connect the deck listeners."""
    from . import models  # noqa: F401
    from .events import register_events

    register_events()
