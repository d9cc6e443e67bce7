"""Taskflow — task management with real-time notifications.

Users register, create and assign tasks, and every change is pushed to
connected clients over a WebSocket channel.
"""

__version__ = "0.1.0"
