"""Exception taxonomy for ingestion and the storage boundary."""

from __future__ import annotations


class ProviderNotConfigured(Exception):
    """A provider is missing the credentials it needs; skipped silently."""

    def __init__(self, provider: str) -> None:
        super().__init__(f"{provider} API key not available, skipping")
        self.provider = provider


class ProviderFetchError(Exception):
    """Network, timeout, HTTP or payload failure from a single provider."""

    def __init__(self, provider: str, reason: str) -> None:
        super().__init__(f"[{provider}] {reason}")
        self.provider = provider
        self.reason = reason


class EventValidationError(Exception):
    """A manually submitted event failed schema validation."""

    def __init__(self, errors: list[dict]) -> None:
        fields = sorted({".".join(str(p) for p in e.get("loc", ())) or "__root__" for e in errors})
        super().__init__(f"Invalid event data: {', '.join(fields)}")
        self.errors = errors
        self.fields = fields


class StoreUnavailableError(Exception):
    """The persistence backend could not serve the request."""
