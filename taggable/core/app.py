"""
Core application module
"""
from flask import Flask, jsonify
from flask_cors import CORS
from taggable.config.config import logger
from taggable.errors import DocumentNotFoundError, IndexRebuildError

def create_app(tagged=None):
    """Initialize the Flask application.

    ``tagged`` is the TaggedCollection to serve; by default one is built
    on the configured MongoDB collection.
    """
    # Create Flask app
    app = Flask(__name__)
    CORS(app)

    if tagged is None:
        from taggable.config.config import config_from_env
        from taggable.database.db import documents_collection, ensure_indexes
        from taggable.tags.models import TaggedCollection

        tagged = TaggedCollection(documents_collection, config_from_env())
        # Ensure MongoDB indexes
        ensure_indexes(documents_collection, tagged.field_name)

    app.extensions['taggable'] = tagged

    # Register blueprints
    from taggable.tags.routes import tags_bp
    from taggable.documents.routes import documents_bp

    app.register_blueprint(tags_bp)
    app.register_blueprint(documents_bp)

    @app.errorhandler(DocumentNotFoundError)
    def handle_not_found(error):
        return jsonify({'error': str(error)}), 404

    @app.errorhandler(IndexRebuildError)
    def handle_rebuild_failure(error):
        logger.error(f"Serving tag request failed: {error}")
        return jsonify({'error': 'Tag index unavailable'}), 503

    return app
