"""
Configuration package for the attendance integrity service.

Holds environment settings and the logging configuration.
"""

from app.config.settings import Settings, get_settings, settings

__all__ = ['Settings', 'get_settings', 'settings']
