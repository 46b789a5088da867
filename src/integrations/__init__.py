"""Integrations module - External service connectors."""

from src.integrations.retell import RetellWebhookParser, retell_parser

__all__ = [
    "RetellWebhookParser",
    "retell_parser",
]
