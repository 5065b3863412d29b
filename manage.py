#!/usr/bin/env python
"""
Management script for ChoreBoard.

This script provides command-line utilities for database migrations
and other administrative tasks, e.g.:

    flask --app manage db upgrade
"""

from choreboard.app import create_app

# Create Flask app (Flask-Migrate is registered by the factory)
app = create_app()

# Make app context available for Flask CLI
if __name__ == '__main__':
    # This allows running: python manage.py
    app.run(debug=True)
