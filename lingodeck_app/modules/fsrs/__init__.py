module_metadata = {
    'name': 'FSRS scheduler',
    'category': 'System',
    'url_prefix': '/api/fsrs',
    'enabled': True
}


def setup_module(app):
    """Build the scheduler parameters once and keep them on the app."""
    from .services.settings_service import FSRSSettingsService

    FSRSSettingsService.init_app(app)
