"""OpenAPI customization utilities.

Enriches the generated schema with:
- A bearer token security scheme, required only by the CMS mutations
- Tags metadata for the CMS and Health groups

This keeps documentation concerns decoupled from the app factory.
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import FastAPI

_MUTATING_METHODS = {"post", "put", "patch", "delete"}

_TAGS = [
    {
        "name": "CMS",
        "description": "Storefront CMS pages. Reads are public; writes need the editor capability.",
    },
    {
        "name": "Health",
        "description": "Liveness and readiness checks.",
    },
]


def apply_openapi_customizations(app: FastAPI) -> None:
    """Patch FastAPI's OpenAPI generation to add metadata and security.

    - Injects components.securitySchemes for ``Authorization: Bearer <token>``
    - Marks mutating operations as requiring the bearer token
    - Adds tags metadata if not present
    """

    original_openapi = app.openapi

    def custom_openapi() -> Dict[str, Any]:
        schema = original_openapi()

        components = schema.setdefault("components", {})
        security_schemes = components.setdefault("securitySchemes", {})
        security_schemes.setdefault(
            "BearerAuth",
            {
                "type": "http",
                "scheme": "bearer",
                "description": "API token mapped to a user via APP_API_TOKENS.",
            },
        )

        tags = schema.setdefault("tags", [])
        existing_tag_names = {t.get("name") for t in tags}
        for tag in _TAGS:
            if tag["name"] not in existing_tag_names:
                tags.append(tag)

        for methods in schema.get("paths", {}).values():
            for method, operation in methods.items():
                if isinstance(operation, dict) and method in _MUTATING_METHODS:
                    operation["security"] = [{"BearerAuth": []}]

        return schema

    app.openapi = custom_openapi  # type: ignore[assignment]
