"""Flask application factory for Jira Sprint Summary."""

from flask import Flask


def create_app() -> Flask:
    """Create and configure the Flask application."""
    app = Flask(__name__)

    app.json.sort_keys = False

    from jira_sprint_summary.web.routes import bp
    app.register_blueprint(bp)

    return app
