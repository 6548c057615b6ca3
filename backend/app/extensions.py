"""
extensions.py — Flask extension singletons.

SQLAlchemy and marshmallow are created here with no app attached and bound in
the app factory via init_app(), so tests can build isolated app instances.

    from backend.app.extensions import db, ma
"""

from flask_marshmallow import Marshmallow
from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()

# Validation schemas in app/schemas/ inherit from marshmallow.Schema directly,
# never ma.Schema: ma.Schema needs an app context and unit tests run without one.
ma = Marshmallow()
