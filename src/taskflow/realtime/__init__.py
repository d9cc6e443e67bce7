"""Real-time delivery — an in-process broadcaster behind a WebSocket endpoint.

Services publish task events through an injected publish capability;
the Broadcaster fans them out to channel members:
1. `tasks` — every connected user (created/updated/deleted)
2. `user:<id>` — one user's private channel (assigned/unassigned)
"""
