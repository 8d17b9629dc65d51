"""Shared slowapi limiter, keyed by client address."""

from slowapi import Limiter
from slowapi.util import get_remote_address

from groceazy.core.config import get_settings

limiter = Limiter(key_func=get_remote_address)


def order_placement_limit() -> str:
    return f"{get_settings().rate_limit_orders_per_minute}/minute"
