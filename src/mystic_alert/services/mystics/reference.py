"""
Enchantment Reference Index.

Maps mystic enchantment keys to their gameplay classes and back, built
once at startup from the Pit Panda reference document.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import httpx

from ...core.logging import get_logger
from .errors import ReferenceDataError

logger = get_logger(__name__)

REFERENCE_URL = "https://pitpanda.rocks/pitreference"


@dataclass(frozen=True)
class ReferenceIndex:
    """
    Read-only enchantment/class lookup.

    Class names are stored lower-case since filter queries are
    lower-cased before compiling.
    """

    enchant_classes: dict[str, frozenset[str]] = field(default_factory=dict)
    class_enchants: dict[str, frozenset[str]] = field(default_factory=dict)

    def has_class(self, name: str) -> bool:
        return name in self.class_enchants

    def enchants_in(self, class_name: str) -> frozenset[str]:
        """Enchantment keys belonging to a class (empty if unknown)."""
        return self.class_enchants.get(class_name, frozenset())

    @classmethod
    def from_classes(cls, class_enchants: dict[str, list[str] | set[str]]) -> ReferenceIndex:
        """Build an index from a class -> enchantment keys mapping."""
        by_enchant: dict[str, set[str]] = {}
        by_class: dict[str, frozenset[str]] = {}
        for class_name, keys in class_enchants.items():
            name = class_name.lower()
            by_class[name] = by_class.get(name, frozenset()) | frozenset(keys)
            for key in keys:
                by_enchant.setdefault(key, set()).add(name)
        return cls(
            enchant_classes={k: frozenset(v) for k, v in by_enchant.items()},
            class_enchants=by_class,
        )

    @classmethod
    def from_reference(cls, data: Any) -> ReferenceIndex:
        """
        Build an index from the reference document.

        Expects ``{"Pit": {"Mystics": {<key>: {"Classes": [...]}, ...}}}``.

        Raises:
            ReferenceDataError: If the document does not have that shape
        """
        try:
            mystics = data["Pit"]["Mystics"]
            classes: dict[str, list[str]] = {}
            for key, enchant in mystics.items():
                for class_name in enchant.get("Classes") or []:
                    classes.setdefault(str(class_name), []).append(key)
        except (KeyError, TypeError, AttributeError) as e:
            raise ReferenceDataError(f"Malformed reference data: {e!r}") from e

        index = cls.from_classes(classes)
        if not index.enchant_classes:
            logger.warning("Reference data lists no enchantment classes")
        return index


async def fetch_reference_index(
    client: httpx.AsyncClient | None = None,
    url: str = REFERENCE_URL,
) -> ReferenceIndex:
    """
    Fetch the reference document and build the index.

    Args:
        client: HTTP client to use (a temporary one is created if None)
        url: Reference document URL

    Returns:
        ReferenceIndex

    Raises:
        ReferenceDataError: On transport failure, non-2xx status or bad payload
    """
    owns_client = client is None
    if client is None:
        client = httpx.AsyncClient(timeout=httpx.Timeout(30.0), follow_redirects=True)

    try:
        response = await client.get(url)
        response.raise_for_status()
        data = response.json()
    except httpx.HTTPError as e:
        raise ReferenceDataError(f"Failed to fetch pit reference: {e}") from e
    except ValueError as e:
        raise ReferenceDataError(f"Pit reference is not JSON: {e}") from e
    finally:
        if owns_client:
            await client.aclose()

    index = ReferenceIndex.from_reference(data)
    logger.info(
        "Loaded pit reference: %d enchants in %d classes",
        len(index.enchant_classes),
        len(index.class_enchants),
    )
    return index
