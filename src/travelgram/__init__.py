"""Travelgram media service: uploads, feeds, social graph and AI captions."""

__version__ = "0.1.0"
