"""
Record Assembler

Rebuilds nested Arrow arrays from level-encoded columns. This is the inverse
of the level encoder and is what the Parquet sink hands to pyarrow: optional
groups become struct arrays masked by definition level, repeated groups become
list arrays whose row boundaries come from repetition level 0.
"""

from dataclasses import dataclass
from typing import Dict, List, Tuple

import numpy as np
import pyarrow as pa

from tessera.encoding.level_encoder import EncodedColumn, RowGroup
from tessera.encoding.schema import Repetition, SchemaNode
from tessera.errors import SchemaError

Path = Tuple[str, ...]


@dataclass
class _Slots:
    """Levels plus values aligned one-to-one with the level slots."""
    def_levels: np.ndarray
    rep_levels: np.ndarray
    values: np.ndarray

    @classmethod
    def from_column(cls, column: EncodedColumn) -> '_Slots':
        defined = column.defined()
        if int(defined.sum()) != len(column.values):
            raise SchemaError(
                f"Column '{column.name}' has {len(column.values)} values "
                f"for {int(defined.sum())} defined slots"
            )
        aligned = np.zeros(len(column), dtype=column.values.dtype)
        aligned[defined] = column.values
        return cls(column.def_levels, column.rep_levels, aligned)

    def subset(self, mask: np.ndarray) -> '_Slots':
        return _Slots(self.def_levels[mask], self.rep_levels[mask], self.values[mask])


def _under(slots: Dict[Path, _Slots], path: Path) -> Dict[Path, _Slots]:
    return {p: s for p, s in slots.items() if p[:len(path)] == path}


def _children(node: SchemaNode, path: Path, slots: Dict[Path, _Slots],
              def_level: int, rep_level: int) -> Tuple[List[pa.Array], List[pa.Field]]:
    arrays = [_build(c, path + (c.name,), slots, def_level, rep_level) for c in node.children]
    return arrays, [c.arrow_field() for c in node.children]


def _build(node: SchemaNode, path: Path, slots: Dict[Path, _Slots],
           parent_def: int, parent_rep: int) -> pa.Array:
    def_level = parent_def + (node.repetition is not Repetition.REQUIRED)
    rep_level = parent_rep + (node.repetition is Repetition.REPEATED)

    if node.is_leaf:
        s = slots[path]
        return pa.array(s.values, type=node.arrow_type(), mask=s.def_levels < def_level)

    under = _under(slots, path)
    if not under:
        raise SchemaError(f"Group '{'.'.join(path)}' has no leaf columns")
    probe = next(iter(under.values()))

    if node.repetition is Repetition.REPEATED:
        starts = np.flatnonzero(probe.rep_levels < rep_level)
        present = probe.def_levels >= def_level
        counts = np.add.reduceat(present.astype(np.int64), starts) if len(starts) else np.zeros(0, np.int64)
        offsets = np.concatenate([[0], np.cumsum(counts)]).astype(np.int32)

        elements = {p: s.subset(s.def_levels >= def_level) for p, s in under.items()}
        arrays, fields = _children(node, path, elements, def_level, rep_level)
        struct = pa.StructArray.from_arrays(arrays, fields=fields)
        return pa.ListArray.from_arrays(pa.array(offsets, type=pa.int32()), struct,
                                        type=node.arrow_type())

    arrays, fields = _children(node, path, under, def_level, rep_level)
    mask = None
    if node.repetition is Repetition.OPTIONAL:
        mask = pa.array(probe.def_levels < def_level, type=pa.bool_())
    return pa.StructArray.from_arrays(arrays, fields=fields, mask=mask)


def assemble(group: RowGroup, schema: SchemaNode) -> pa.Table:
    """
    Assemble one row group into an Arrow table matching the schema.

    Args:
        group: Level-encoded columns, one per schema leaf
        schema: Message schema the columns were encoded against

    Returns:
        pa.Table with group.num_rows rows and schema.arrow_schema()

    Raises:
        SchemaError: If the columns do not match the schema's leaves
    """
    slots = {c.path: _Slots.from_column(c) for c in group.columns}
    expected = {leaf.path for leaf in schema.leaves()}
    if set(slots) != expected:
        missing = sorted('.'.join(p) for p in expected - set(slots))
        extra = sorted('.'.join(p) for p in set(slots) - expected)
        raise SchemaError(
            f"Columns do not match schema '{schema.name}'",
            {'missing': missing, 'extra': extra},
        )

    arrays = [_build(c, (c.name,), slots, 0, 0) for c in schema.children]
    table = pa.Table.from_arrays(arrays, schema=schema.arrow_schema())
    if table.num_rows != group.num_rows:
        raise SchemaError(
            f"Assembled {table.num_rows} rows, expected {group.num_rows}",
            {'schema': schema.name},
        )
    return table


# ---------------------------------------------------------------------------
# Level inspection
# ---------------------------------------------------------------------------

def list_lengths(column: EncodedColumn, list_def: int = 1) -> np.ndarray:
    """Number of repeated elements in each row of a repeated leaf."""
    starts = np.flatnonzero(column.rep_levels == 0)
    present = (column.def_levels >= list_def).astype(np.int64)
    return np.add.reduceat(present, starts) if len(starts) else np.zeros(0, np.int64)


def tier_depths(group: RowGroup, prefix: str) -> np.ndarray:
    """
    Deepest tier present for each row (or repeated element) of a chain.

    Every optional tier group adds one definition level, so the deepest
    defined leaf of a slot gives the tier depth. For repeated chains the
    repeated group's own level is subtracted and empty placeholder slots are
    dropped.
    """
    columns = [c for c in group.columns if c.path[0] == prefix]
    if not columns:
        raise KeyError(prefix)

    deepest = np.max(np.stack([c.def_levels for c in columns]), axis=0)
    if columns[0].max_rep:
        present = deepest >= 1
        return (deepest[present] - 1).astype(np.int64)
    return deepest.astype(np.int64)
