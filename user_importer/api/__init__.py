"""HTTP blueprints: credential upload, user import, health and docs."""
