"""Notifications app package.

Stores in-app notifications and pushes them in real time to the
recipient's open WebSocket connections. Delivery runs in Celery tasks
triggered by booking domain events.
"""
