"""Response normalization.

Walks arbitrarily nested list responses along a descriptor's declared paths and
turns each item into a uniform Candidate.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from ..models.candidate import Candidate
from ..registry.descriptor import DependentDescriptor, ResourceDescriptor
from .errors import InvocationError, MalformedCandidate

logger = logging.getLogger(__name__)

Enricher = Callable[[Dict[str, Any]], Dict[str, Any]]


def resolve(value: Any, path: Optional[str]) -> Any:
    """Navigate a decoded response by dotted path.

    Segments ending in ``[]`` flatten a sequence, after which the rest of the
    path is applied to every element and the result is a list. Missing keys
    and wrongly shaped nodes are treated as absent, never as errors.

    Args:
        value: Decoded value (mapping, sequence or scalar)
        path: Dotted path such as ``Reservations[].Instances[]``; empty or None
            addresses ``value`` itself

    Returns:
        The addressed value, a list when the path flattens, or None if absent
    """
    if not path:
        return value

    current: List[Any] = [value]
    flattened = False

    for segment in path.split("."):
        flatten = segment.endswith("[]")
        key = segment[:-2] if flatten else segment
        found: List[Any] = []

        for node in current:
            if key:
                if not isinstance(node, Mapping):
                    continue
                child = node.get(key)
            else:
                child = node

            if child is None:
                continue

            if flatten:
                if isinstance(child, (list, tuple)):
                    found.extend(child)
            else:
                found.append(child)

        current = found
        flattened = flattened or flatten

    if flattened:
        return current
    return current[0] if current else None


def stringify(value: Any, separator: str = ",") -> Optional[str]:
    """Render an attribute value as a string; None stays None."""
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, (list, tuple)):
        parts = [stringify(v, separator) for v in value]
        return separator.join(p for p in parts if p is not None)
    return str(value)


class Normalizer:
    """Converts list responses into ordered Candidate sequences."""

    def extract_items(self, response: Any, descriptor: ResourceDescriptor) -> List[Any]:
        """Get the raw items of a response, in response order."""
        found = resolve(response, descriptor.list_path)

        if found is None:
            return []
        if isinstance(found, Mapping):
            return [found]
        if isinstance(found, (list, tuple)):
            return list(found)

        logger.warning(
            f"Unexpected {type(found).__name__} at '{descriptor.list_path}' for {descriptor.type_name}, ignoring"
        )
        return []

    def normalize(
        self,
        response: Any,
        descriptor: ResourceDescriptor,
        parent: Optional[Candidate] = None,
        edge: Optional[DependentDescriptor] = None,
        enrich: Optional[Enricher] = None,
    ) -> List[Candidate]:
        """Normalize a list response into candidates.

        Excluded items are dropped silently; malformed items are logged and
        skipped without aborting the rest of the response.

        Args:
            response: Opaque response of the descriptor's list operation
            descriptor: Descriptor of the listed type
            parent: Matched parent when listing a dependent (optional)
            edge: Dependent edge the listing was scoped through (optional)
            enrich: Per-item callback merging extra detail into the item (optional)

        Returns:
            Candidates in response order
        """
        candidates: List[Candidate] = []

        for index, item in enumerate(self.extract_items(response, descriptor)):
            if enrich is not None:
                try:
                    item = enrich(item)
                except (InvocationError, KeyError, TypeError) as e:
                    logger.warning(f"Skipping {descriptor.type_name} item {index}: detail lookup failed: {e}")
                    continue

            try:
                if descriptor.exclude is not None and descriptor.exclude(item):
                    continue
                candidates.append(self.to_candidate(item, descriptor, parent=parent, edge=edge))
            except MalformedCandidate as e:
                logger.warning(f"Skipping {descriptor.type_name} item {index}: {e}")
            except (AttributeError, KeyError, TypeError) as e:
                logger.warning(f"Skipping unreadable {descriptor.type_name} item {index}: {e}")

        return candidates

    def to_candidate(
        self,
        item: Any,
        descriptor: ResourceDescriptor,
        parent: Optional[Candidate] = None,
        edge: Optional[DependentDescriptor] = None,
    ) -> Candidate:
        """Build a Candidate from one raw item.

        Raises:
            MalformedCandidate: If the identifier or tags cannot be read
        """
        resource_id = self._read_id(item, descriptor.id_field)

        if parent is not None and edge is not None and edge.child_id is not None:
            resource_id = edge.child_id(parent, resource_id)

        if not resource_id:
            raise MalformedCandidate(f"no readable identifier at '{descriptor.id_field}'")

        tags = self._read_tags(item, descriptor.tag_path)

        attrs: Dict[str, str] = {}
        for name, path in descriptor.attr_fields.items():
            value = stringify(resolve(item, path), descriptor.list_separator)
            if value is not None:
                attrs[name] = value

        if parent is not None and edge is not None and edge.attrs is not None:
            attrs.update(edge.attrs(parent))

        return Candidate(id=resource_id, tags=tags, attrs=attrs)

    def _read_id(self, item: Any, id_field: Any) -> Optional[str]:
        if id_field is None:
            return item if isinstance(item, str) and item else None

        fields: Sequence[str] = (id_field,) if isinstance(id_field, str) else tuple(id_field)
        parts = []
        for field_path in fields:
            value = resolve(item, field_path)
            if value is None or isinstance(value, (Mapping, list, tuple)) or value == "":
                return None
            parts.append(str(value))
        return "_".join(parts)

    def _read_tags(self, item: Any, tag_path: Optional[str]) -> Dict[str, str]:
        if tag_path is None:
            return {}

        raw_tags = resolve(item, tag_path)
        if raw_tags is None:
            return {}

        if isinstance(raw_tags, Mapping):
            return {str(k): "" if v is None else str(v) for k, v in raw_tags.items()}

        if not isinstance(raw_tags, (list, tuple)):
            raise MalformedCandidate(f"tags at '{tag_path}' are a {type(raw_tags).__name__}")

        tags: Dict[str, str] = {}
        for tag in raw_tags:
            if not isinstance(tag, Mapping) or "Key" not in tag:
                raise MalformedCandidate(f"tag entry without Key: {tag!r}")
            value = tag.get("Value")
            tags[str(tag["Key"])] = "" if value is None else str(value)
        return tags
