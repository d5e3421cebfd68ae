def register_blueprints(app):
    from savora.api.auth import bp as auth_bp
    from savora.api.bookmarks import bp as bookmarks_bp
    from savora.api.pages import bp as pages_bp

    app.register_blueprint(pages_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(bookmarks_bp)
