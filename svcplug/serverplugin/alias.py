"""Aliases for service paths and methods."""

from __future__ import annotations

from typing import Any

ALIAS_APPLIED_KEY = "__aliasAppliedKey"


class AliasPlugin:
    """Maps alias service names to real ones on read and back on write."""

    def __init__(self) -> None:
        self.aliases: dict[str, tuple[str, str]] = {}
        self.reverse_aliases: dict[str, tuple[str, str]] = {}

    def alias(
        self, alias_service_path: str, alias_service_method: str, service_path: str, service_method: str
    ) -> None:
        """Make ``alias_service_path.alias_service_method`` call ``service_path.service_method``."""
        self.aliases[f"{alias_service_path}.{alias_service_method}"] = (service_path, service_method)
        self.reverse_aliases[f"{service_path}.{service_method}"] = (alias_service_path, alias_service_method)

    def post_read_request(self, ctx: Any, r: Any, e: BaseException | None) -> None:
        """Replace an aliased service name in the request with the real one."""
        pair = self.aliases.get(f"{r.service_path}.{r.service_method}")
        if pair is None:
            return
        r.service_path, r.service_method = pair
        if r.metadata is None:
            r.metadata = {}
        r.metadata[ALIAS_APPLIED_KEY] = "true"

    def pre_write_response(self, ctx: Any, r: Any, res: Any) -> None:
        """Restore the alias in the request and the response."""
        if not r.metadata or r.metadata.get(ALIAS_APPLIED_KEY) != "true":
            return
        pair = self.reverse_aliases.get(f"{r.service_path}.{r.service_method}")
        if pair is None:
            return
        r.service_path, r.service_method = pair
        r.metadata.pop(ALIAS_APPLIED_KEY, None)
        if res is not None:
            res.service_path, res.service_method = pair