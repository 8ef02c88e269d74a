"""Reverse Mapping Deriver: structural inverse of a forward table.

The derived table swaps source and target field names. Transforms are not
inverted: a mapping that declares ``reverseTransform`` uses it, any other
transform becomes an identity pass-through. The result is only an exact
inverse for tables made of plain renames.
"""

from __future__ import annotations

import logging

from llmcompat.core.errors import ConfigurationError
from llmcompat.core.mapping.models import FieldMapping, Formats, MappingTable

logger = logging.getLogger(__name__)


def derive_reverse_table(table: MappingTable, *, strict: bool = False) -> MappingTable:
    """Build the opposite-direction table for *table*.

    Args:
        table: The forward table.
        strict: Refuse mappings whose forward transform has no declared
            ``reverseTransform`` instead of degrading them to identity.

    Raises:
        ConfigurationError: In strict mode, when a transform cannot be reversed.
    """
    reverse: dict[str, FieldMapping] = {}

    for source_field, mapping in table.normalized().items():
        target = mapping.target_field

        if mapping.transform is not None and mapping.reverse_transform is None:
            if strict:
                raise ConfigurationError(
                    f"field {source_field!r} uses transform {mapping.transform!r} "
                    "with no reverseTransform; cannot derive a reverse mapping"
                )
            logger.warning(
                "Reverse mapping for %s -> %s drops transform %s (identity used)",
                source_field,
                target,
                mapping.transform,
            )

        if target in reverse:
            logger.warning(
                "Reverse mapping collision on %s: %s replaces %s",
                target,
                source_field,
                reverse[target].target_field,
            )

        fields: dict[str, str] = {"target_field": source_field}
        if mapping.reverse_transform is not None:
            fields["transform"] = mapping.reverse_transform
        if mapping.transform is not None:
            fields["reverse_transform"] = mapping.transform
        reverse[target] = FieldMapping(**fields)

    return MappingTable(
        version=f"{table.version}-reverse",
        description=f"Reverse of: {table.description}",
        formats=Formats(source=table.formats.target, target=table.formats.source),
        field_mappings=dict(reverse),
        transform_functions=dict(table.transform_functions),
    )
