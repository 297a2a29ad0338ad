# src/cache/marshalling.py — v1
"""Versioned binary codec for ``CachedRoutes``.

Payload is UTF-8 JSON: ``{"schema_version": N, "cached_routes": {...}}``.
Payloads with an unknown schema version are rejected so that readers can
skip records written by a newer process instead of misreading them.
"""

from __future__ import annotations

from pydantic import BaseModel, ValidationError

from routecache.cache.models import CachedRoutes

SCHEMA_VERSION = 1
SUPPORTED_SCHEMA_VERSIONS = frozenset({1})


class RouteCodecError(Exception):
    """Raised when a stored payload cannot be turned back into CachedRoutes."""


class _CachedRoutesEnvelope(BaseModel):
    schema_version: int
    cached_routes: CachedRoutes


class _VersionHeader(BaseModel):
    schema_version: int


class CachedRoutesMarshaller:
    """Encode/decode ``CachedRoutes`` to/from bytes."""

    @staticmethod
    def marshal(cached_routes: CachedRoutes) -> bytes:
        envelope = _CachedRoutesEnvelope(
            schema_version=SCHEMA_VERSION, cached_routes=cached_routes
        )
        return envelope.model_dump_json().encode("utf-8")

    @staticmethod
    def unmarshal(payload: bytes) -> CachedRoutes:
        try:
            header = _VersionHeader.model_validate_json(payload)
        except ValidationError as e:
            raise RouteCodecError(f"Unreadable cached routes payload: {e}") from e

        if header.schema_version not in SUPPORTED_SCHEMA_VERSIONS:
            raise RouteCodecError(
                f"Unsupported cached routes schema version {header.schema_version}"
            )

        try:
            return _CachedRoutesEnvelope.model_validate_json(payload).cached_routes
        except ValidationError as e:
            raise RouteCodecError(f"Malformed cached routes payload: {e}") from e
