"""Component catalog — read-only registry of placeable parts.

Loaded once from the bundled ``data/components.json`` and cached for the
life of the process. There is no mutation API; placed instances copy what
they need from their spec.
"""

from __future__ import annotations

import json
import logging
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Mapping

from piezosim.errors import UnknownKind
from piezosim.schemas.catalog import ComponentSpec

logger = logging.getLogger(__name__)

CATALOG_PATH = Path(__file__).parent.parent / "data" / "components.json"


@lru_cache()
def load_catalog() -> Mapping[str, ComponentSpec]:
    """Return the kind→spec mapping, in palette order."""
    with open(CATALOG_PATH, "r", encoding="utf-8") as f:
        raw = json.load(f)

    specs = {}
    for entry in raw.get("components", []):
        spec = ComponentSpec(**entry)
        specs[spec.kind] = spec

    logger.info("Component catalog loaded: %d kinds", len(specs))
    return MappingProxyType(specs)


def spec_for(kind: str) -> ComponentSpec:
    spec = load_catalog().get(kind)
    if spec is None:
        raise UnknownKind(kind)
    return spec


def list_specs() -> list[ComponentSpec]:
    return list(load_catalog().values())
