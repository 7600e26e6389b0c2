"""Layout reports for struct descriptors."""

from dataclasses import dataclass

from dataclasses_json import DataClassJsonMixin

from .types import Struct, describe, size


@dataclass(frozen=True)
class FieldLayout(DataClassJsonMixin):
    """Placement of one struct field."""

    name: str
    offset: int
    size: int
    end: int
    type: str
    padding_before: int  # Gap between the previous field's end and this offset


@dataclass(frozen=True)
class StructLayout(DataClassJsonMixin):
    """Placement of every field in a struct."""

    name: str
    size: int
    padding: int  # Total bytes not covered by any field
    fields: list[FieldLayout]

    @property
    def is_packed(self) -> bool:
        return self.padding == 0


def describe_layout(name: str, struct: Struct) -> StructLayout:
    """Calculate the layout report for a struct.

    Fields that start before the end of the previous field (possible when
    offsets were given explicitly) report no padding.
    """
    fields: list[FieldLayout] = []
    cursor = 0
    covered = 0

    for offset, member in struct:
        member_size = size(member.type)
        gap = max(offset - cursor, 0)
        fields.append(
            FieldLayout(
                name=member.name,
                offset=offset,
                size=member_size,
                end=offset + member_size,
                type=describe(member.type),
                padding_before=gap,
            )
        )
        covered += max(offset + member_size - max(offset, cursor), 0)
        cursor = max(cursor, offset + member_size)

    total = size(struct)
    return StructLayout(name=name, size=total, padding=max(total - covered, 0), fields=fields)
