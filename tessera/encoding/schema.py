"""
Nested Schema

Describes the nested column layout handed to columnar sinks. Every optional
tier becomes an `optional group` nested inside its parent tier, so a reader can
tell which protocol tiers a file holds from its schema alone. Items are a single
`repeated group` per frame row.

Example (pre-state resolved to tier v1_2):

    required group pre {
      required group position {
        required float x;
        required float y;
      }
      ...
      optional group v1_2 {
        required int32 raw_analog_x (UINT_8);
      }
    }

The message string is the logical layout the level encoder works from. In
the file, pyarrow stores the item group with the standard three-level list
encoding (`required group item (LIST) { repeated group list { required group
element { ... } } }`). The extra wrapper levels are required, so every leaf
keeps the definition and repetition levels the message gives it; only the
physical column paths gain `list.element`.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, List, Optional, Sequence, Tuple

import numpy as np
import pyarrow as pa

from tessera.config.field_config import (
    ITEM_CHAIN,
    POST_CHAIN,
    PRE_CHAIN,
    ChainSpec,
    FieldSpec,
)
from tessera.errors import SchemaError

SCHEMA_METADATA_KEY = b'tessera.schema'

FRAME_MESSAGE = 'frame_data'
ITEM_MESSAGE = 'item_data'


class TypeTag(Enum):
    """Physical column type."""
    BOOLEAN = 'boolean'
    INT32 = 'int32'
    INT64 = 'int64'
    FLOAT = 'float'

    @classmethod
    def from_dtype(cls, dtype) -> 'TypeTag':
        dtype = np.dtype(dtype)
        if dtype.kind == 'b':
            return cls.BOOLEAN
        if dtype.kind == 'f':
            return cls.FLOAT
        if dtype.kind in 'iu':
            return cls.INT64 if dtype.itemsize == 8 else cls.INT32
        raise SchemaError(f"No physical type for dtype {dtype}")


class Repetition(Enum):
    REQUIRED = 'required'
    OPTIONAL = 'optional'
    REPEATED = 'repeated'


@dataclass
class SchemaNode:
    """
    A group or leaf of the nested schema.

    Leaves carry a physical type and, when built from the field catalogue,
    the FieldSpec plus the chain/tier the column comes from.
    """
    name: str
    repetition: Repetition = Repetition.REQUIRED
    children: List['SchemaNode'] = field(default_factory=list)
    type_tag: Optional[TypeTag] = None
    logical: Optional[str] = None
    spec: Optional[FieldSpec] = None
    chain: Optional[str] = None
    tier: int = 0

    @property
    def is_leaf(self) -> bool:
        return self.type_tag is not None

    def child(self, name: str) -> Optional['SchemaNode']:
        for c in self.children:
            if c.name == name:
                return c
        return None

    def group(self, name: str, repetition: Repetition = Repetition.REQUIRED) -> 'SchemaNode':
        """Existing child group by name, or a new one."""
        existing = self.child(name)
        if existing is not None:
            return existing
        node = SchemaNode(name, repetition)
        self.children.append(node)
        return node

    def leaves(self, prefix: Tuple[str, ...] = (), max_def: int = 0,
               max_rep: int = 0, list_def: Optional[int] = None) -> Iterator['Leaf']:
        """Every leaf below this node, with its maximum definition/repetition levels."""
        for c in self.children:
            d = max_def + (c.repetition is not Repetition.REQUIRED)
            r = max_rep + (c.repetition is Repetition.REPEATED)
            ld = d if c.repetition is Repetition.REPEATED else list_def
            path = prefix + (c.name,)
            if c.is_leaf:
                yield Leaf(path, c, d, r, ld)
            else:
                yield from c.leaves(path, d, r, ld)

    # Message-type rendering

    def to_message(self) -> str:
        lines = [f"message {self.name} {{"]
        for c in self.children:
            c._render(lines, 1)
        lines.append("}")
        return "\n".join(lines) + "\n"

    def _render(self, lines: List[str], depth: int) -> None:
        indent = "  " * depth
        if self.is_leaf:
            annotation = f" ({self.logical})" if self.logical else ""
            lines.append(
                f"{indent}{self.repetition.value} {self.type_tag.value} {self.name}{annotation};"
            )
            return
        lines.append(f"{indent}{self.repetition.value} group {self.name} {{")
        for c in self.children:
            c._render(lines, depth + 1)
        lines.append(f"{indent}}}")

    # Arrow mapping

    def arrow_type(self) -> pa.DataType:
        if self.is_leaf:
            if self.spec is not None:
                return pa.from_numpy_dtype(np.dtype(self.spec.dtype))
            return _ARROW_PHYSICAL[self.type_tag]
        struct = pa.struct([c.arrow_field() for c in self.children])
        if self.repetition is Repetition.REPEATED:
            return pa.list_(pa.field('element', struct, nullable=False))
        return struct

    def element_type(self) -> pa.DataType:
        """Struct type of one element of a repeated group."""
        return pa.struct([c.arrow_field() for c in self.children])

    def arrow_field(self) -> pa.Field:
        # Repeated groups become non-null lists; emptiness is a zero-length list
        nullable = self.repetition is Repetition.OPTIONAL
        return pa.field(self.name, self.arrow_type(), nullable=nullable)

    def arrow_schema(self) -> pa.Schema:
        """Arrow schema for a message node, with the message string embedded."""
        return pa.schema(
            [c.arrow_field() for c in self.children],
            metadata={SCHEMA_METADATA_KEY: self.to_message().encode('utf-8')},
        )


_ARROW_PHYSICAL = {
    TypeTag.BOOLEAN: pa.bool_(),
    TypeTag.INT32: pa.int32(),
    TypeTag.INT64: pa.int64(),
    TypeTag.FLOAT: pa.float32(),
}


@dataclass(frozen=True)
class Leaf:
    """A leaf column with its position in the nesting."""
    path: Tuple[str, ...]
    node: SchemaNode
    max_def: int
    max_rep: int
    list_def: Optional[int] = None  # definition level of the enclosing repeated group

    @property
    def name(self) -> str:
        return '.'.join(self.path)


# ---------------------------------------------------------------------------
# Building schemas from the field catalogue
# ---------------------------------------------------------------------------

INDEX_FIELD = FieldSpec(('index',), 'i4')
PORT_FIELD = FieldSpec(('port',), 'u1', 'UINT_8')
IS_FOLLOWER_FIELD = FieldSpec(('is_follower',), '?')


def _leaf(spec: FieldSpec, chain: Optional[str] = None, tier: int = 0) -> SchemaNode:
    return SchemaNode(
        name=spec.path[-1],
        type_tag=TypeTag.from_dtype(spec.dtype),
        logical=spec.logical,
        spec=spec,
        chain=chain,
        tier=tier,
    )


def _add_chain(parent: SchemaNode, chain: ChainSpec, flags: Sequence[bool]) -> None:
    """Add a chain's tiers under parent, each later tier nested in the previous."""
    depth = chain.flags_to_depth(flags)
    node = parent
    for k, tier in enumerate(chain.tiers[:depth + 1]):
        if k > 0:
            node = node.group(tier.name, Repetition.OPTIONAL)
        for spec in tier.fields:
            target = node
            for part in spec.path[:-1]:
                target = target.group(part)
            target.children.append(_leaf(spec, chain.name, k))


def frame_schema(pre_flags: Sequence[bool], post_flags: Sequence[bool]) -> SchemaNode:
    """
    Schema of the per-port frame file.

    Args:
        pre_flags: Presence flag per pre-state tier
        post_flags: Presence flag per post-state tier

    Raises:
        TierOrderError: If a tier is flagged present while its parent is not
    """
    root = SchemaNode(FRAME_MESSAGE)
    root.children.extend([_leaf(INDEX_FIELD), _leaf(PORT_FIELD), _leaf(IS_FOLLOWER_FIELD)])
    _add_chain(root.group('pre'), PRE_CHAIN, pre_flags)
    _add_chain(root.group('post'), POST_CHAIN, post_flags)
    return root


def item_schema(item_flags: Sequence[bool]) -> SchemaNode:
    """
    Schema of the item file: one row per frame, items as a repeated group.

    Raises:
        TierOrderError: If a tier is flagged present while its parent is not
    """
    root = SchemaNode(ITEM_MESSAGE)
    root.children.append(_leaf(INDEX_FIELD))
    _add_chain(root.group('item', Repetition.REPEATED), ITEM_CHAIN, item_flags)
    return root


# ---------------------------------------------------------------------------
# Parsing message strings
# ---------------------------------------------------------------------------

_TOKEN = re.compile(r'[{};()]|[^\s{};()]+')


class _Tokens:
    def __init__(self, text: str):
        self.tokens = _TOKEN.findall(text)
        self.pos = 0

    def peek(self) -> Optional[str]:
        return self.tokens[self.pos] if self.pos < len(self.tokens) else None

    def take(self, expected: Optional[str] = None) -> str:
        token = self.peek()
        if token is None:
            raise SchemaError("Unexpected end of schema string")
        if expected is not None and token != expected:
            raise SchemaError(f"Expected '{expected}', got '{token}'", {'position': self.pos})
        self.pos += 1
        return token


def _parse_fields(tokens: _Tokens, parent: SchemaNode) -> None:
    while tokens.peek() != '}':
        rep = tokens.take()
        try:
            repetition = Repetition(rep)
        except ValueError:
            raise SchemaError(f"Unknown repetition '{rep}'", {'position': tokens.pos})

        kind = tokens.take()
        name = tokens.take()
        logical = None
        if tokens.peek() == '(':
            tokens.take('(')
            logical = tokens.take()
            tokens.take(')')

        if kind == 'group':
            node = SchemaNode(name, repetition, logical=logical)
            tokens.take('{')
            _parse_fields(tokens, node)
            tokens.take('}')
        else:
            try:
                type_tag = TypeTag(kind)
            except ValueError:
                raise SchemaError(f"Unknown physical type '{kind}'", {'field': name})
            node = SchemaNode(name, repetition, type_tag=type_tag, logical=logical)
            tokens.take(';')
        parent.children.append(node)


def parse_message(text: str) -> SchemaNode:
    """
    Parse a message-type schema string back into a SchemaNode tree.

    Raises:
        SchemaError: If the string is malformed
    """
    tokens = _Tokens(text)
    tokens.take('message')
    root = SchemaNode(tokens.take())
    tokens.take('{')
    _parse_fields(tokens, root)
    tokens.take('}')
    if tokens.peek() is not None:
        raise SchemaError(f"Trailing content after message: '{tokens.peek()}'")
    return root


def check_schema(root: SchemaNode) -> str:
    """
    Render a schema and verify it parses back to the same leaf layout.

    Returns:
        The rendered message string

    Raises:
        SchemaError: If rendering and parsing disagree
    """
    message = root.to_message()
    parsed = parse_message(message)

    def layout(node: SchemaNode):
        return [(leaf.path, leaf.node.type_tag, leaf.max_def, leaf.max_rep)
                for leaf in node.leaves()]

    if layout(parsed) != layout(root):
        raise SchemaError(f"Generated schema for '{root.name}' does not round-trip")
    return message


def tier_groups(root: SchemaNode, group: str) -> List[str]:
    """Names of the optional tier groups nested under a top-level group."""
    names = []
    node = root.child(group)
    while node is not None:
        nxt = next((c for c in node.children if c.repetition is Repetition.OPTIONAL), None)
        if nxt is not None:
            names.append(nxt.name)
        node = nxt
    return names
