"""Per-courier override table for integrations that bend the generic rules.

Some courier gateways need headers the declared auth mode would not produce,
or expect a tracking body shape other than the default. Rather than branching
on courier names inside the resolver and adapter, those quirks live here as
data keyed by a normalized courier identifier.

Header and body values are ``str.format`` templates:
- headers: ``{token}``, ``{bearer}``, ``{api_key}``, ``{username}``, ``{password}``
- tracking body: ``{docket}``

A header whose template renders empty (for example no token configured) is
skipped.
"""

import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping


@dataclass(frozen=True)
class IntegrationOverride:
    """Extra rules applied for one courier.

    Attributes:
        courier_id: Normalized courier identifier (see normalize_courier_id).
        extra_headers: Header templates added after auth resolution,
            regardless of the declared auth type.
        tracking_body: Replacement for the default tracking body merged into
            body-bearing ``track_shipment`` requests.
    """

    courier_id: str
    extra_headers: Mapping[str, str] = field(default_factory=dict)
    tracking_body: Mapping[str, str] | None = None


def normalize_courier_id(courier: str | None) -> str:
    """Lowercase and strip non-alphanumerics: ``"Safe Express"`` -> ``safeexpress``."""
    if not courier:
        return ""
    return re.sub(r"[^a-z0-9]", "", courier.lower())


INTEGRATION_OVERRIDES: Mapping[str, IntegrationOverride] = MappingProxyType({
    "safexpress": IntegrationOverride(
        courier_id="safexpress",
        extra_headers={
            "Authorization": "{bearer}",
            "x-api-key": "{api_key}",
        },
        tracking_body={"docNo": "{docket}", "docType": "WB"},
    ),
})


def get_override(courier: str | None) -> IntegrationOverride | None:
    """Look up the override for a courier name or id, if any."""
    return INTEGRATION_OVERRIDES.get(normalize_courier_id(courier))


def render_templates(templates: Mapping[str, str], context: Mapping[str, str]) -> dict[str, str]:
    """Render each template against ``context``, dropping empty results.

    Unknown placeholders render as empty strings.
    """
    rendered: dict[str, str] = {}
    for key, template in templates.items():
        try:
            value = template.format_map(_Blank(context))
        except (ValueError, IndexError):
            continue
        if value:
            rendered[key] = value
    return rendered


class _Blank(dict):
    def __missing__(self, key: str) -> str:
        return ""
