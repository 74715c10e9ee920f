"""
Level Encoder

Flattens a ColumnTree into (values, definition levels, repetition levels) per
leaf, the Dremel-style encoding nested columnar writers consume.

Levels are computed per leaf from its position in the nested schema:
    - definition level: how many optional/repeated ancestors of the value are
      actually present
    - repetition level: 0 at the start of a row, otherwise the depth of the
      repeated group the value continues

Since tier presence is fixed per batch, every value of a frame-file leaf is
defined at its maximum level. Item leaves vary: a frame with no items is still
a row, written as a single entry at definition level 0.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

import numpy as np

from tessera.encoding.schema import (
    Leaf,
    SchemaNode,
    TypeTag,
    frame_schema,
    item_schema,
)
from tessera.errors import SchemaError
from tessera.transform.column_tree import ChainColumns, ColumnTree

logger = logging.getLogger('tessera.encoding')

LEVEL_DTYPE = np.int16


@dataclass
class EncodedColumn:
    """
    One leaf column in level-encoded form.

    `values` holds only the defined values; `def_levels` and `rep_levels`
    have one entry per slot, defined or not.
    """
    path: Tuple[str, ...]
    type_tag: TypeTag
    values: np.ndarray
    def_levels: np.ndarray
    rep_levels: np.ndarray
    max_def: int
    max_rep: int

    @property
    def name(self) -> str:
        return '.'.join(self.path)

    def __len__(self) -> int:
        return len(self.def_levels)

    def defined(self) -> np.ndarray:
        """Mask of the slots that carry a value."""
        return self.def_levels == self.max_def


@dataclass
class RowGroup:
    """A batch of rows written together, e.g. one port's leader frames."""
    num_rows: int
    columns: List[EncodedColumn]
    port: Optional[int] = None
    is_follower: bool = False

    def column(self, name: str) -> EncodedColumn:
        for c in self.columns:
            if c.name == name:
                return c
        raise KeyError(name)


def required_levels(num_rows: int, max_def: int) -> Tuple[np.ndarray, np.ndarray]:
    """Levels for a non-repeated leaf whose every value is present."""
    return (
        np.full(num_rows, max_def, dtype=LEVEL_DTYPE),
        np.zeros(num_rows, dtype=LEVEL_DTYPE),
    )


def repeated_levels(lengths: np.ndarray, max_def: int,
                    max_rep: int = 1) -> Tuple[np.ndarray, np.ndarray]:
    """
    Levels for a leaf under a single repeated group.

    Each row contributes max(length, 1) slots. The first slot of a row has
    repetition level 0 and later slots max_rep; an empty row's single slot is
    undefined (definition level 0).

    Args:
        lengths: Number of repeated elements per row
        max_def: Definition level of a present value
        max_rep: Repetition level of the repeated group

    Returns:
        (def_levels, rep_levels)
    """
    lengths = np.asarray(lengths, dtype=np.int64)
    slots = np.maximum(lengths, 1)
    starts = np.concatenate([[0], np.cumsum(slots)[:-1]]).astype(np.int64)
    total = int(slots.sum())

    rep_levels = np.full(total, max_rep, dtype=LEVEL_DTYPE)
    rep_levels[starts] = 0

    def_levels = np.full(total, max_def, dtype=LEVEL_DTYPE)
    def_levels[starts[lengths == 0]] = 0

    return def_levels, rep_levels


def _chain_columns(tree: ColumnTree, leaf: Leaf, follower: bool) -> ChainColumns:
    slot = tree.follower if follower else tree.leader
    if leaf.node.chain == 'pre':
        return slot.pre
    if leaf.node.chain == 'post':
        return slot.post
    raise SchemaError(f"Leaf '{leaf.name}' does not belong to a port chain")


def _frame_values(tree: ColumnTree, leaf: Leaf, port_idx: int, follower: bool) -> np.ndarray:
    if leaf.node.chain is None:
        name, n = leaf.path[-1], tree.num_frames
        if name == 'index':
            return tree.frame_indexes
        if name == 'port':
            return np.full(n, tree.ports[port_idx], dtype=np.uint8)
        if name == 'is_follower':
            return np.full(n, follower, dtype=np.bool_)
        raise SchemaError(f"Unknown frame-level leaf '{leaf.name}'")
    return _chain_columns(tree, leaf, follower)[leaf.node.spec.name][port_idx]


def encode_port(tree: ColumnTree, port_idx: int, follower: bool = False,
                schema: Optional[SchemaNode] = None) -> RowGroup:
    """
    Encode one port's leader (or follower) columns as a row group.

    Args:
        tree: Populated column tree
        port_idx: Dense row (position in the port array)
        follower: Encode follower instead of leader columns
        schema: Frame schema; built from the tree's depths if omitted

    Returns:
        RowGroup with one row per frame
    """
    if schema is None:
        schema = frame_schema(tree.depths.flags('pre'), tree.depths.flags('post'))

    n = tree.num_frames
    columns = []
    for leaf in schema.leaves():
        values = _frame_values(tree, leaf, port_idx, follower)
        def_levels, rep_levels = required_levels(n, leaf.max_def)
        columns.append(EncodedColumn(
            path=leaf.path,
            type_tag=leaf.node.type_tag,
            values=np.asarray(values),
            def_levels=def_levels,
            rep_levels=rep_levels,
            max_def=leaf.max_def,
            max_rep=leaf.max_rep,
        ))

    return RowGroup(num_rows=n, columns=columns, port=tree.ports[port_idx], is_follower=follower)


def encode_frames(tree: ColumnTree, include_followers: bool = True,
                  schema: Optional[SchemaNode] = None) -> List[RowGroup]:
    """
    Encode every port of the frame file.

    One leader row group per port, in port order, followed by one follower
    row group for every port whose first-frame character is paired.
    """
    if schema is None:
        schema = frame_schema(tree.depths.flags('pre'), tree.depths.flags('post'))

    groups = [encode_port(tree, p, False, schema) for p in range(tree.num_ports)]
    if include_followers:
        for p in tree.follower_ports():
            groups.append(encode_port(tree, p, True, schema))

    logger.debug(f"Encoded {len(groups)} frame row groups for {tree.num_ports} ports")
    return groups


def encode_items(tree: ColumnTree, schema: Optional[SchemaNode] = None) -> RowGroup:
    """
    Encode the item columns as a single row group with one row per frame.

    Returns:
        RowGroup whose item leaves carry repetition levels
    """
    if schema is None:
        schema = item_schema(tree.depths.flags('item'))

    items = tree.items
    columns = []
    for leaf in schema.leaves():
        if leaf.max_rep == 0:
            values = tree.frame_indexes
            def_levels, rep_levels = required_levels(tree.num_frames, leaf.max_def)
        else:
            values = items[leaf.node.spec.name]
            def_levels, rep_levels = repeated_levels(items.lengths, leaf.max_def, leaf.max_rep)
        columns.append(EncodedColumn(
            path=leaf.path,
            type_tag=leaf.node.type_tag,
            values=np.asarray(values),
            def_levels=def_levels,
            rep_levels=rep_levels,
            max_def=leaf.max_def,
            max_rep=leaf.max_rep,
        ))

    return RowGroup(num_rows=tree.num_frames, columns=columns)


def _tier_path(chain, tier: int) -> Tuple[str, ...]:
    return tuple(t.name for t in chain.chain.tiers[1:tier + 1])


def _flat_name(path: Tuple[str, ...]) -> str:
    return '_'.join(path)


def _flat_chain(out: Dict[Tuple[str, ...], np.ndarray], prefix: Tuple[str, ...],
                chain, columns: Dict[str, np.ndarray]) -> None:
    for k, spec in chain.specs():
        out[prefix + _tier_path(chain, k) + (_flat_name(spec.path),)] = columns[spec.name]


def flat_arrays(tree: ColumnTree, capacity: int,
                include_followers: bool = True) -> Dict[Tuple[str, ...], np.ndarray]:
    """
    Bare arrays for flat (non-nested) sinks, without levels.

    Keys are group paths ending in a dataset name, e.g.
    ('leader', 'pre', 'v1_2', 'raw_analog_x'). Per-port arrays keep their
    (num_ports, num_frames) shape; item arrays are padded to
    (num_frames, capacity).

    Raises:
        ItemCapacityError: If a frame holds more than `capacity` items
    """
    out: Dict[Tuple[str, ...], np.ndarray] = {('frame_index',): tree.frame_indexes}

    slots = [('leader', tree.leader)]
    if include_followers:
        slots.append(('follower', tree.follower))
    for slot_name, slot in slots:
        _flat_chain(out, (slot_name, 'pre'), slot.pre, slot.pre.columns)
        _flat_chain(out, (slot_name, 'post'), slot.post, slot.post.columns)

    for block_name, block in (('start', tree.start), ('end', tree.end)):
        if block is not None:
            _flat_chain(out, (block_name,), block, block.columns)

    _flat_chain(out, ('item',), tree.items, tree.items.to_dense(capacity))
    return out
