"""
Pulumipus: a chat front-end for Pulumi Copilot.
"""

__version__ = "0.3.0"
