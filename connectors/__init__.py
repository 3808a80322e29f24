"""
connectors — HubSpot OAuth integration.

Handles:
  • OAuth2 auth-URL generation
  • Callback handling (code → token exchange → portal lookup)
  • Per-tenant token storage & lazy refresh
  • Fernet encryption of tokens at rest
  • Authenticated access to the CRM REST API

The provider is a subclass of BaseConnector.
"""
