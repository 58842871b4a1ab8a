"""dev-assistant — project-awareness tools and managed Cursor rule deployment."""

__version__ = "1.0.0"
