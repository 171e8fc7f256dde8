"""Deployment tooling for Inkrypt: domain-derived config and Cloudflare reconciliation."""

__version__ = "1.0.0"
