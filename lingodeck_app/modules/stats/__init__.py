module_metadata = {
    'name': 'Statistics',
    'category': 'Insights',
    'url_prefix': '/api/stats',
    'enabled': True
}
