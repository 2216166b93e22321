"""
Email package.

Modules:
- client: EmailClient for sending emails via the Communications Service API

Delivery is fire-and-forget from the caller's point of view: the client
reports success as a bool and never raises.
"""
