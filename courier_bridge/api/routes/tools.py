"""Stateless helpers behind the mapping console.

Field path discovery and preview over a pasted response, and cURL import.
None of these touch the database.
"""

from fastapi import APIRouter

from courier_bridge.api.schemas import (
    CurlParseRequest,
    FieldMappingIn,
    FieldPathsRequest,
    FieldPathsResponse,
    FieldPreviewRequest,
    FieldPreviewResponse,
)
from courier_bridge.services.curl_parser import parse_curl
from courier_bridge.services.integration_types import RequestConfig
from courier_bridge.services.path_extractor import (
    extract_fields,
    extract_paths,
    generate_path_accessor,
    get_by_path,
)

router = APIRouter(tags=["tools"])


@router.post("/field-paths", response_model=FieldPathsResponse)
def discover_field_paths(data: FieldPathsRequest) -> FieldPathsResponse:
    """Sorted field paths found in a response, each as an unmapped draft."""
    paths = extract_paths(data.response)
    return FieldPathsResponse(
        paths=paths,
        mappings=[FieldMappingIn(api_field=p, api_type=data.api_type) for p in paths],
    )


@router.post("/field-paths/preview", response_model=FieldPreviewResponse)
def preview_field_paths(data: FieldPreviewRequest) -> FieldPreviewResponse:
    """Value at ``path`` and/or the subset of the response holding ``paths``.

    Unknown or malformed paths resolve to null rather than failing.
    """
    preview = FieldPreviewResponse()
    if data.path:
        preview.value = get_by_path(data.response, data.path)
        preview.accessor = generate_path_accessor(data.path)
    if data.paths:
        preview.fields = extract_fields(data.response, data.paths)
    return preview


@router.post("/curl/parse", response_model=RequestConfig)
def import_curl(data: CurlParseRequest) -> RequestConfig:
    return parse_curl(data.command)
