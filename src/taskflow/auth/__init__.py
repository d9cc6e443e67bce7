"""Authentication.

Stateless JWT bearer tokens (24h). The token travels in an HTTP-only
cookie for browser requests, in an Authorization header for other
clients, and in the ?token= query param for the WebSocket handshake.
All three paths go through CredentialVerifier.
"""
