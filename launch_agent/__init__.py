"""Ask natural-language questions about today's Product Hunt launches."""

__version__ = "0.1.0"
