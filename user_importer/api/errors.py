"""Error handlers for the application.

Every error is answered with a JSON body ``{"error": message}``; importer
exceptions choose their own status code, anything unexpected becomes 500.
"""
from flask import jsonify
from werkzeug.exceptions import HTTPException, RequestEntityTooLarge

from user_importer.core.exceptions import ImporterError


def register_error_handlers(app):
    """Register error handlers with the Flask app."""

    @app.errorhandler(ImporterError)
    def importer_error(error):
        """Handle typed importer errors (validation, not found, import failures)."""
        if error.status_code >= 500:
            app.logger.error(f"Import pipeline error: {error}", exc_info=True)
        else:
            app.logger.info(f"Rejected request ({error.status_code}): {error}")
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(HTTPException)
    def http_error(error):
        """Handle Werkzeug HTTP errors (404 routes, 405...)."""
        if isinstance(error, RequestEntityTooLarge):
            # Oversize uploads are validation failures like any other size check
            limit = app.config.get("MAX_CONTENT_LENGTH")
            message = f"Request body exceeds {limit} bytes" if limit else "Request body too large"
            app.logger.info(f"Rejected request (400): {message}")
            return jsonify({"error": message}), 400
        return jsonify({"error": error.description or error.name}), error.code

    @app.errorhandler(Exception)
    def handle_exception(error):
        """Handle uncaught exceptions."""
        # Pass through HTTP errors raised as plain exceptions by extensions
        if isinstance(error, HTTPException):
            return http_error(error)

        # ALWAYS log the error - the response only carries the message
        app.logger.error(f"Unhandled error: {error}", exc_info=True)
        return jsonify({"error": str(error)}), 500
