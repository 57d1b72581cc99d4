"""ASGI middleware."""

from tablo2plex.middleware.cors import CORSMiddleware

__all__ = ["CORSMiddleware"]
