"""Core infrastructure: configuration, logging, security and caching."""

from __future__ import annotations
