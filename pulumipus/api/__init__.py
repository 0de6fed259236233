"""
Pulumi Cloud API: wire types, token provider and the REST client.
"""
from pulumipus.api.auth import AuthenticationToken, SessionTokenProvider, StaticTokenProvider, TokenProvider
from pulumipus.api.client import Client
from pulumipus.api.models import ChatRequest, ChatResponse, OrganizationSummary, User

__all__ = [
    "AuthenticationToken",
    "SessionTokenProvider",
    "StaticTokenProvider",
    "TokenProvider",
    "Client",
    "ChatRequest",
    "ChatResponse",
    "OrganizationSummary",
    "User",
]
