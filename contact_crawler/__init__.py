"""Contact crawler: breadth-first site crawling for emails and phone numbers."""

__version__ = "0.1.0"
