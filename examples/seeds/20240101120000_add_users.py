"""
Seed development users.
"""

from sqlalchemy import text

from sqlalchemy_seedfile import seed


@seed("development", "test")
def add_users(session):
    """Create the default users."""
    session.execute(
        text("INSERT INTO users (username, full_name) VALUES (:username, :full_name)"),
        [
            {"username": "rfeynman", "full_name": "Richard Feynman"},
            {"username": "mcurie", "full_name": "Marie Curie"},
        ],
    )
