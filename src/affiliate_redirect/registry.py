"""Partner registry loading from ``config/partners.yaml``."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import structlog
import yaml
from pydantic import ValidationError

from affiliate_redirect.models import PartnerEntry, PartnerRegistry, ShortlinkRule

logger = structlog.get_logger(__name__)

DEFAULT_REGISTRY_PATH = Path(__file__).resolve().parents[2] / "config" / "partners.yaml"


class RegistryError(ValueError):
    """The registry file is malformed or contradicts itself."""


def build_registry(raw: dict[str, Any]) -> PartnerRegistry:
    """Validate a parsed registry document.

    Expected shape::

        partners:
          zalando.de: {network: awin, mid: 12345}
          ikea.com:   {network: cj}
        shortlinks:
          amzn.to: amazon.de

    Args:
        raw: Mapping as produced by ``yaml.safe_load``.

    Returns:
        Immutable :class:`PartnerRegistry`.

    Raises:
        RegistryError: On schema errors, or if one domain is listed twice
            with different networks.
    """
    partners = raw.get("partners") or {}
    shortlinks = raw.get("shortlinks") or {}
    if not isinstance(partners, dict) or not isinstance(shortlinks, dict):
        raise RegistryError("'partners' and 'shortlinks' must be mappings")

    try:
        entries = [
            PartnerEntry(domain=str(domain), params=params or {})
            for domain, params in partners.items()
        ]
        rules = [
            ShortlinkRule(host=str(host), root=str(root))
            for host, root in shortlinks.items()
        ]
    except ValidationError as exc:
        raise RegistryError(f"invalid registry entry: {exc}") from exc

    seen: dict[str, PartnerEntry] = {}
    for entry in entries:
        previous = seen.get(entry.domain)
        if previous is not None and previous.params != entry.params:
            raise RegistryError(
                f"domain {entry.domain!r} is registered twice with different settings"
            )
        seen[entry.domain] = entry

    return PartnerRegistry(entries=tuple(seen.values()), shortlinks=tuple(rules))


def load_registry(path: str | Path | None = None) -> PartnerRegistry:
    """Load and validate the partner registry YAML.

    A missing file yields an empty registry (every host passes through);
    a malformed one raises so the process does not start half-configured.

    Args:
        path: Registry file; defaults to ``config/partners.yaml``.

    Returns:
        :class:`PartnerRegistry`.

    Raises:
        RegistryError: If the file exists but cannot be parsed or validated.
    """
    registry_path = Path(path) if path else DEFAULT_REGISTRY_PATH
    try:
        with registry_path.open("r", encoding="utf-8") as fh:
            raw = yaml.safe_load(fh) or {}
    except FileNotFoundError:
        logger.warning("registry.not_found", path=str(registry_path))
        return PartnerRegistry()
    except yaml.YAMLError as exc:
        raise RegistryError(f"cannot parse {registry_path}: {exc}") from exc

    if not isinstance(raw, dict):
        raise RegistryError(f"{registry_path} must contain a mapping")

    registry = build_registry(raw)
    logger.info(
        "registry.loaded",
        path=str(registry_path),
        partners=len(registry.entries),
        shortlinks=len(registry.shortlinks),
    )
    return registry
