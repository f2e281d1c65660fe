"""
DOST Project Tracker
Blueprint registry and shared route helpers.
"""

from flask import request

from tracker.core.exceptions import ValidationError

# Matches both project collections; views receive the segment as ``collection``
PROJECT_COLLECTION = "<any('cest-projects', 'setup-projects'):collection>"
PROJECT_ROUTE = f"/{PROJECT_COLLECTION}/<int:project_id>"


def json_body(required=False):
    """Request JSON as a dict; ``{}`` when absent unless *required*."""
    data = request.get_json(silent=True)
    if data is None:
        if required:
            raise ValidationError("Request body must be JSON")
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def register_blueprints(app):
    from tracker.blueprints.address_bp import address_bp
    from tracker.blueprints.auth_bp import auth_bp
    from tracker.blueprints.calendar_bp import calendar_bp
    from tracker.blueprints.document_bp import document_bp
    from tracker.blueprints.edit_access_bp import edit_access_bp
    from tracker.blueprints.health_bp import health_bp
    from tracker.blueprints.notification_bp import notification_bp
    from tracker.blueprints.project_bp import project_bp
    from tracker.blueprints.snake_score_bp import snake_score_bp
    from tracker.blueprints.user_bp import user_bp
    from tracker.blueprints.view_doc_bp import view_doc_bp

    app.register_blueprint(health_bp)
    app.register_blueprint(user_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(project_bp)
    app.register_blueprint(document_bp)
    app.register_blueprint(edit_access_bp)
    app.register_blueprint(view_doc_bp)
    app.register_blueprint(notification_bp)
    app.register_blueprint(calendar_bp)
    app.register_blueprint(snake_score_bp)
    app.register_blueprint(address_bp)
