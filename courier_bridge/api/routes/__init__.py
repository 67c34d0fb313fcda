"""FastAPI route modules.

Exports all route modules for inclusion in the main application.
"""

from courier_bridge.api.routes import clients, courier_proxy, couriers, tms_fields, tools

__all__ = [
    "courier_proxy",
    "couriers",
    "clients",
    "tools",
    "tms_fields",
]
