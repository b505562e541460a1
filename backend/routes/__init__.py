# routes/__init__.py
"""
Blueprint registration helper
"""

def register_blueprints(app):
    """Register all application blueprints"""
    from routes.health import health_bp
    from routes.catalog import catalog_bp
    from routes.metadata import metadata_bp

    app.register_blueprint(health_bp)
    app.register_blueprint(catalog_bp)
    app.register_blueprint(metadata_bp)
