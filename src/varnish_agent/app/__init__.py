"""
App - FastAPI application behind the httpd plugin.
"""

from .factory import create_app

__all__ = ["create_app"]
