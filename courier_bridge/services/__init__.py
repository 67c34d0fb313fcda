"""Service layer for Courier Bridge.

Provides the courier call pipeline (path discovery, auth resolution,
request assembly, response classification), adapter module generation and
the courier workflow over the record store.
"""

from courier_bridge.services.courier_proxy import CourierProxyService
from courier_bridge.services.courier_service import CourierService, MappingDraft
from courier_bridge.services.mapping_compiler import compile_module
from courier_bridge.services.path_extractor import extract_paths, generate_path_accessor

__all__ = [
    "CourierProxyService",
    "CourierService",
    "MappingDraft",
    "compile_module",
    "extract_paths",
    "generate_path_accessor",
]
