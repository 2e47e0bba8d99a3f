"""
Версии контрактов HTTP API.
"""

from __future__ import annotations

HTTP_API_VERSION = "v1"
