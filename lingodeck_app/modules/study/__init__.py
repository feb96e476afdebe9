module_metadata = {
    'name': 'Study sessions',
    'category': 'Study',
    'url_prefix': '/api/study',
    'enabled': True
}


def setup_module(app):
    from . import models  # noqa: F401
