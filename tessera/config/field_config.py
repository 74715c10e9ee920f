"""
Field catalogue for frame conversion.
Purpose: declare every leaf column, the protocol tier it belongs to, its storage
type, and how its value is read out of a frame record.

Each optional chain (pre-state, post-state, item, ...) is a list of tiers. Tier 0
is always present; tier k+1 can only exist inside tier k.
"""

from dataclasses import dataclass, field
from operator import attrgetter
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence, Tuple

from tessera.errors import TierOrderError
from tessera.frames.records import Direction

# Stand-in for an absent port/player reference in u8 columns
UINT8_SENTINEL = 0xFF

# Stand-in for an empty item slot in fixed-capacity (flat sink) item columns
ITEM_ID_SENTINEL = 0xFFFFFFFF


# ---------------------------------------------------------------------------
# Value conversions
# ---------------------------------------------------------------------------

def faces_right(direction: Any) -> bool:
    """Negative direction faces left; zero and positive face right."""
    if isinstance(direction, Direction):
        return direction == Direction.RIGHT
    return direction >= 0


def attack_or_zero(attack: Optional[int]) -> int:
    return 0 if attack is None else int(attack)


def port_or_sentinel(port: Optional[int]) -> int:
    return UINT8_SENTINEL if port is None else int(port)


def l_cancel_code(l_cancel: Optional[bool]) -> int:
    """Unknown/not attempted -> 0, success -> 1, failure -> 2."""
    if l_cancel is None:
        return 0
    return 1 if l_cancel else 2


def misc_as_u32(misc: bytes) -> int:
    """Reinterpret 4 raw bytes as a little-endian unsigned 32-bit integer."""
    return int.from_bytes(bytes(misc), byteorder='little', signed=False)


# ---------------------------------------------------------------------------
# Catalogue types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class FieldSpec:
    """
    One leaf column.

    Attributes:
        path: Output path inside the tier, e.g. ('position', 'x')
        dtype: numpy dtype code of the column ('?', 'u1', 'f4', ...)
        logical: Parquet logical annotation (e.g. 'UINT_8'), if any
        source: Dotted attribute path on the tier record; defaults to the path
        convert: Conversion applied to the raw record value
    """
    path: Tuple[str, ...]
    dtype: str
    logical: Optional[str] = None
    source: Optional[str] = None
    convert: Optional[Callable[[Any], Any]] = None

    @property
    def name(self) -> str:
        return '.'.join(self.path)

    def extract(self, node: Any) -> Any:
        value = attrgetter(self.source or self.name)(node)
        if self.convert is not None:
            return self.convert(value)
        return value


@dataclass(frozen=True)
class TierSpec:
    """A version-gated tier: its fields plus the record attribute holding it."""
    name: str
    fields: Tuple[FieldSpec, ...]
    attr: Optional[str] = None  # None for the base tier


@dataclass(frozen=True)
class ChainSpec:
    """A linear chain of optional tiers."""
    name: str
    tiers: Tuple[TierSpec, ...] = field(default_factory=tuple)

    @property
    def max_depth(self) -> int:
        return len(self.tiers) - 1

    def walk(self, node: Any) -> List[bool]:
        """Presence flags of every tier, starting from a base-tier record."""
        flags = []
        for k, tier in enumerate(self.tiers):
            if k > 0 and node is not None:
                node = getattr(node, tier.attr, None)
            flags.append(node is not None)
        return flags

    def nodes(self, node: Any, depth: int) -> List[Any]:
        """Records for tiers 0..depth; missing tiers come back as None."""
        result = [node]
        for tier in self.tiers[1:depth + 1]:
            node = getattr(node, tier.attr, None) if node is not None else None
            result.append(node)
        return result

    def flags_to_depth(self, flags: Sequence[bool]) -> int:
        """
        Deepest present tier for a presence vector (-1 if none present).

        Raises:
            TierOrderError: If a tier is present while its parent is not
        """
        if len(flags) > len(self.tiers):
            raise TierOrderError(
                f"Chain '{self.name}' has {len(self.tiers)} tiers, got {len(flags)} flags"
            )
        depth = -1
        for k, present in enumerate(flags):
            if present and depth != k - 1:
                raise TierOrderError(
                    f"Tier '{self.tiers[k].name}' of chain '{self.name}' is present "
                    f"but its parent tier '{self.tiers[k - 1].name}' is absent",
                    {'chain': self.name, 'tier': k},
                )
            if present:
                depth = k
        return depth

    def depth_to_flags(self, depth: int) -> List[bool]:
        return [k <= depth for k in range(len(self.tiers))]

    def fields(self, depth: int) -> Iterator[Tuple[int, FieldSpec]]:
        """(tier index, field) for every field of tiers 0..depth."""
        for k, tier in enumerate(self.tiers[:depth + 1]):
            for spec in tier.fields:
                yield k, spec


def _f(path: str, dtype: str, logical: Optional[str] = None, **kwargs) -> FieldSpec:
    return FieldSpec(tuple(path.split('.')), dtype, logical, **kwargs)


# ---------------------------------------------------------------------------
# Chains
# ---------------------------------------------------------------------------

PRE_CHAIN = ChainSpec('pre', (
    TierSpec('base', (
        _f('position.x', 'f4'),
        _f('position.y', 'f4'),
        _f('direction', '?', convert=faces_right),
        _f('joystick.x', 'f4'),
        _f('joystick.y', 'f4'),
        _f('cstick.x', 'f4'),
        _f('cstick.y', 'f4'),
        _f('triggers.physical.l', 'f4'),
        _f('triggers.physical.r', 'f4'),
        _f('triggers.logical', 'f4'),
        _f('random_seed', 'u4', 'UINT_32'),
        _f('buttons.physical', 'u2', 'UINT_16'),
        _f('buttons.logical', 'u4', 'UINT_32'),
        _f('state', 'u2', 'UINT_16'),
    )),
    TierSpec('v1_2', (
        _f('raw_analog_x', 'u1', 'UINT_8'),
    ), attr='v1_2'),
    TierSpec('v1_4', (
        _f('damage', 'f4'),
    ), attr='v1_4'),
))

POST_CHAIN = ChainSpec('post', (
    TierSpec('base', (
        _f('position.x', 'f4'),
        _f('position.y', 'f4'),
        _f('direction', '?', convert=faces_right),
        _f('damage', 'f4'),
        _f('shield', 'f4'),
        _f('state', 'u2', 'UINT_16'),
        _f('character', 'u1', 'UINT_8'),
        _f('last_attack_landed', 'u1', 'UINT_8', convert=attack_or_zero),
        _f('combo_count', 'u1', 'UINT_8'),
        _f('last_hit_by', 'u1', 'UINT_8', convert=port_or_sentinel),
        _f('stocks', 'u1', 'UINT_8'),
    )),
    TierSpec('v0_2', (
        _f('state_age', 'f4'),
    ), attr='v0_2'),
    TierSpec('v2_0', (
        _f('flags', 'u8', 'UINT_64'),
        _f('misc_as', 'f4'),
        _f('airborne', '?'),
        _f('ground', 'u2', 'UINT_16'),
        _f('jumps', 'u1', 'UINT_8'),
        _f('l_cancel', 'u1', 'UINT_8', convert=l_cancel_code),
    ), attr='v2_0'),
    TierSpec('v2_1', (
        _f('hurtbox_state', 'u1', 'UINT_8'),
    ), attr='v2_1'),
    TierSpec('v3_5', (
        _f('velocities.autogenous.x', 'f4'),
        _f('velocities.autogenous.y', 'f4'),
        _f('velocities.knockback.x', 'f4'),
        _f('velocities.knockback.y', 'f4'),
    ), attr='v3_5'),
    TierSpec('v3_8', (
        _f('hitlag', 'f4'),
    ), attr='v3_8'),
))

ITEM_CHAIN = ChainSpec('item', (
    TierSpec('base', (
        _f('id', 'u4', 'UINT_32'),
        _f('type', 'u2', 'UINT_16'),
        _f('state', 'u1', 'UINT_8'),
        _f('direction', '?', convert=faces_right),
        _f('position.x', 'f4'),
        _f('position.y', 'f4'),
        _f('velocity.x', 'f4'),
        _f('velocity.y', 'f4'),
        _f('damage', 'u2', 'UINT_16'),
        _f('timer', 'f4'),
    )),
    TierSpec('v3_2', (
        _f('misc', 'u4', 'UINT_32', convert=misc_as_u32),
    ), attr='v3_2'),
    TierSpec('v3_6', (
        _f('owner', 'u1', 'UINT_8', convert=port_or_sentinel),
    ), attr='v3_6'),
))

START_CHAIN = ChainSpec('start', (
    TierSpec('base', (
        _f('random_seed', 'u4', 'UINT_32'),
    )),
))

END_CHAIN = ChainSpec('end', (
    TierSpec('base', ()),
    TierSpec('v3_7', (
        _f('latest_finalized_frame', 'i4'),
    ), attr='v3_7'),
))

CHAINS: Dict[str, ChainSpec] = {
    chain.name: chain
    for chain in (PRE_CHAIN, POST_CHAIN, ITEM_CHAIN, START_CHAIN, END_CHAIN)
}


class FieldConfig:
    """Lookup helpers over the field catalogue."""

    @classmethod
    def get_chain(cls, chain_name: str) -> ChainSpec:
        """Get a chain by name.

        Raises:
            ValueError: If chain name not found
        """
        if chain_name not in CHAINS:
            raise ValueError(
                f"Unknown chain '{chain_name}'. "
                f"Available: {list(CHAINS.keys())}"
            )
        return CHAINS[chain_name]

    @classmethod
    def get_column_names(cls, chain_name: str, depth: int) -> List[str]:
        """Dotted column names of a chain resolved to the given depth."""
        chain = cls.get_chain(chain_name)
        if not -1 <= depth <= chain.max_depth:
            raise ValueError(
                f"depth must be between -1 and {chain.max_depth} for chain "
                f"'{chain_name}', got {depth}"
            )
        return [spec.name for _, spec in chain.fields(depth)]
