import os
from typing import List, Optional


def env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.lower() in ["true", "1", "yes"]


def env_none_or_str(name: str, default: Optional[str] = None) -> Optional[str]:
    value = os.getenv(name)
    if value is None or value.lower() == "none" or value == "":
        return default
    return value


def env_list(name: str, default: Optional[List[str]] = None) -> List[str]:
    """Comma separated env var, e.g. CORS_ORIGINS=http://a,http://b"""
    value = os.getenv(name)
    if not value:
        return list(default or [])
    return [item.strip() for item in value.split(",") if item.strip()]
