"""
Column Tree

Output of the columnar transform. Mirrors the nested, version-gated shape of
the frame records, but every leaf is a dense numpy array:

    - per-port fields: shape (num_ports, num_frames), written at (port, frame)
    - start/end fields: shape (num_frames,)
    - item fields: flat, append-ordered, with a per-frame length side array

A tier is either allocated for the whole batch or not at all; there is no
per-row nullability inside a present tier.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from tessera.config.field_config import ITEM_ID_SENTINEL, ChainSpec, FieldSpec
from tessera.errors import ItemCapacityError
from tessera.frames.characters import character_name, is_paired
from tessera.transform.tier_resolver import TierDepths


@dataclass
class ChainColumns:
    """Columns of one tier chain, allocated up to the resolved depth."""
    chain: ChainSpec
    depth: int
    columns: Dict[str, np.ndarray] = field(default_factory=dict)

    @classmethod
    def allocate(cls, chain: ChainSpec, depth: int, shape: Tuple[int, ...]) -> 'ChainColumns':
        """Zero-filled columns for tiers 0..depth."""
        columns = {
            spec.name: np.zeros(shape, dtype=spec.dtype)
            for _, spec in chain.fields(depth)
        }
        return cls(chain=chain, depth=depth, columns=columns)

    def __getitem__(self, name: str) -> np.ndarray:
        return self.columns[name]

    def __contains__(self, name: str) -> bool:
        return name in self.columns

    def specs(self) -> Iterator[Tuple[int, FieldSpec]]:
        return self.chain.fields(self.depth)

    def freeze(self) -> None:
        for column in self.columns.values():
            column.flags.writeable = False


@dataclass
class PortColumns:
    """Pre- and post-state columns for one character slot (leader or follower)."""
    pre: ChainColumns
    post: ChainColumns


@dataclass
class ItemColumns:
    """
    Append-addressed item columns.

    Values for every item of every frame are appended in frame order; the
    `lengths` side array records how many items each frame contributed.
    """
    chain: ChainSpec
    depth: int
    columns: Dict[str, np.ndarray] = field(default_factory=dict)
    lengths: np.ndarray = field(default_factory=lambda: np.zeros(0, dtype=np.int64))
    _pending: Dict[str, list] = field(default_factory=dict, repr=False)
    _pending_lengths: List[int] = field(default_factory=list, repr=False)

    @classmethod
    def allocate(cls, chain: ChainSpec, depth: int) -> 'ItemColumns':
        items = cls(chain=chain, depth=depth)
        items._pending = {spec.name: [] for _, spec in chain.fields(depth)}
        return items

    def append_frame(self, count: int) -> None:
        """Start a new frame group holding `count` items."""
        self._pending_lengths.append(count)

    def append(self, name: str, value) -> None:
        self._pending[name].append(value)

    def finish(self) -> None:
        """Convert the growable buffers into typed arrays."""
        dtypes = {spec.name: spec.dtype for _, spec in self.specs()}
        self.columns = {
            name: np.asarray(values, dtype=dtypes[name])
            for name, values in self._pending.items()
        }
        self.lengths = np.asarray(self._pending_lengths, dtype=np.int64)
        self._pending = {}
        self._pending_lengths = []

    @property
    def offsets(self) -> np.ndarray:
        """Start position of each frame's items, plus a trailing total."""
        return np.concatenate([[0], np.cumsum(self.lengths)]).astype(np.int64)

    @property
    def total(self) -> int:
        return int(self.lengths.sum())

    def __getitem__(self, name: str) -> np.ndarray:
        return self.columns[name]

    def specs(self) -> Iterator[Tuple[int, FieldSpec]]:
        return self.chain.fields(self.depth)

    def to_dense(self, capacity: int) -> Dict[str, np.ndarray]:
        """
        Pad items into a fixed (num_frames, capacity) layout.

        Empty slots hold ITEM_ID_SENTINEL in the `id` column and zero in every
        other column.

        Raises:
            ItemCapacityError: If any frame holds more than `capacity` items
        """
        num_frames = len(self.lengths)
        if num_frames and int(self.lengths.max()) > capacity:
            frame = int(np.argmax(self.lengths))
            raise ItemCapacityError(
                f"Frame holds {int(self.lengths[frame])} items, capacity is {capacity}",
                {'frame_position': frame},
            )

        offsets = self.offsets
        dense = {}
        for _, spec in self.specs():
            fill = ITEM_ID_SENTINEL if spec.name == 'id' else 0
            out = np.full((num_frames, capacity), fill, dtype=spec.dtype)
            flat = self.columns[spec.name]
            for f in range(num_frames):
                n = self.lengths[f]
                if n:
                    out[f, :n] = flat[offsets[f]:offsets[f] + n]
            dense[spec.name] = out
        return dense

    def freeze(self) -> None:
        for column in self.columns.values():
            column.flags.writeable = False
        self.lengths.flags.writeable = False


@dataclass
class ColumnTree:
    """
    Fully populated columns for one replay.

    Attributes:
        depths: Resolved tier depth per chain
        ports: Port number of each dense row, in port-array order
        frame_indexes: Game frame index of each column position
        leader: Leader columns, shape (num_ports, num_frames)
        follower: Follower columns, same shape; only written where supplied
        start: Frame start columns, or None if the replay has none
        end: Frame end columns, or None if the replay has none
        items: Item columns (always present, possibly empty)
    """
    depths: TierDepths
    ports: List[int]
    frame_indexes: np.ndarray
    leader: PortColumns
    follower: PortColumns
    items: ItemColumns
    start: Optional[ChainColumns] = None
    end: Optional[ChainColumns] = None

    @property
    def num_frames(self) -> int:
        return len(self.frame_indexes)

    @property
    def num_ports(self) -> int:
        return len(self.ports)

    @property
    def first_frame_index(self) -> int:
        return int(self.frame_indexes[0])

    def has_follower(self, port_idx: int) -> bool:
        """Whether a port's resident character (on the first frame) is paired."""
        if self.num_frames == 0:
            return False
        return is_paired(int(self.leader.post['character'][port_idx, 0]))

    def follower_ports(self) -> List[int]:
        return [p for p in range(self.num_ports) if self.has_follower(p)]

    def freeze(self) -> None:
        """Make every column read-only; the tree is immutable after transform."""
        self.frame_indexes.flags.writeable = False
        for slot in (self.leader, self.follower):
            slot.pre.freeze()
            slot.post.freeze()
        for block in (self.start, self.end):
            if block is not None:
                block.freeze()
        self.items.freeze()

    def port_dataframe(self, port_idx: int, follower: bool = False,
                       enum_names: bool = False) -> pd.DataFrame:
        """
        Tabular view of one port's columns.

        Args:
            port_idx: Dense row (position in the port array)
            follower: Use follower instead of leader columns
            enum_names: Add a 'post.character_name' column

        Returns:
            DataFrame with a 'frame' column followed by 'pre.*' and 'post.*' columns
        """
        slot = self.follower if follower else self.leader
        data = {}
        for prefix, chain_columns in (('pre', slot.pre), ('post', slot.post)):
            for _, spec in chain_columns.specs():
                data[f"{prefix}.{spec.name}"] = chain_columns[spec.name][port_idx]

        df = pd.DataFrame(data)
        df.insert(0, 'frame', self.frame_indexes)

        if enum_names:
            df['post.character_name'] = df['post.character'].map(character_name)

        return df


def port_numbers(port_data: Sequence) -> List[int]:
    return [p.port for p in port_data]
