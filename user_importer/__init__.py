"""Identity user import service package.

To use the Flask app:
    from user_importer.flask_app import create_app

To use the import pipeline without Flask:
    from user_importer.core import CredentialStore, SessionRegistry, BulkImporter
"""
# Note: flask_app is not imported here so the core modules stay usable
# from other tools without building an application.
