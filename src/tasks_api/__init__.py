"""
Tasks API package.

A FastAPI service over a thread-safe in-memory task store. The ASGI app lives
in ``tasks_api.main`` (``tasks_api.main:app``); ``tasks_api.main.create_app``
builds a fresh one with its own store.
"""

__version__ = "0.1.0"
