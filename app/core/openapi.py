"""OpenAPI schema tweaks: API key security scheme and tag descriptions."""

from __future__ import annotations

from typing import Any, Dict

from fastapi import FastAPI

from app.core.auth import API_KEY_HEADER, PUBLIC_PATHS

SECURITY_SCHEME_NAME = "ApiKeyAuth"

TAGS_METADATA = [
    {
        "name": "Data",
        "description": "Strategy documents stored as flat JSON files. Rate limited per client.",
    },
    {
        "name": "Health",
        "description": "Liveness check, no authentication required.",
    },
]


def apply_openapi_customizations(app: FastAPI) -> None:
    """Wrap ``app.openapi`` so the generated schema documents API key auth.

    Every operation requires the ``X-API-Key`` header except the public
    paths, which get an empty ``security`` list.
    """

    original_openapi = app.openapi

    def custom_openapi() -> Dict[str, Any]:
        schema = original_openapi()

        schemes = schema.setdefault("components", {}).setdefault("securitySchemes", {})
        schemes.setdefault(
            SECURITY_SCHEME_NAME,
            {
                "type": "apiKey",
                "in": "header",
                "name": API_KEY_HEADER,
                "description": f"Shared secret sent in the {API_KEY_HEADER} header.",
            },
        )
        schema.setdefault("security", [{SECURITY_SCHEME_NAME: []}])

        tags = schema.setdefault("tags", [])
        known = {t.get("name") for t in tags}
        tags.extend(tag for tag in TAGS_METADATA if tag["name"] not in known)

        for path, operations in schema.get("paths", {}).items():
            if path not in PUBLIC_PATHS:
                continue
            for operation in operations.values():
                if isinstance(operation, dict):
                    operation["security"] = []

        return schema

    app.openapi = custom_openapi  # type: ignore[assignment]
