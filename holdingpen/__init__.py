"""Clear out a media holding pen bucket once its contents are safely archived."""

__version__ = "1.0.0"
