"""
API Dependencies
================
Shared FastAPI dependencies and response helpers.
"""

from datetime import datetime, timezone
from typing import Any, Dict

from ..naming import NamingService, get_naming_service


def get_service() -> NamingService:
    """Naming service dependency; overridden by ``create_app(service=...)``."""
    return get_naming_service()


def envelope(data: Any) -> Dict[str, Any]:
    """Wrap a payload in the standard success envelope."""
    return {
        "success": True,
        "data": data,
        "meta": {"timestamp": datetime.now(timezone.utc).isoformat()},
    }
