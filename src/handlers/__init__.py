"""
Module: handlers
Description: Package initialization for API endpoint handlers.

This package contains FastAPI route handlers for Webhook Relay:
- destinations: Configuration API and destination probing
- deliveries: Enqueue API
- queues: Queue status and recent notifications

All handlers use dependency injection for the relay components.
"""

__all__ = []
