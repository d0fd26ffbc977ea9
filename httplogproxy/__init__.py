"""Reverse HTTP proxy that records requests and responses, with a dashboard API."""

__version__ = "0.1.0"