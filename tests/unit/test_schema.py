"""
Unit tests for tessera.encoding.schema module.

Tests for nested schema generation, message rendering and parsing.
"""

import itertools

import pyarrow as pa
import pytest

from tessera.config.field_config import ITEM_CHAIN, POST_CHAIN, PRE_CHAIN
from tessera.encoding.schema import (
    SCHEMA_METADATA_KEY,
    TypeTag,
    check_schema,
    frame_schema,
    item_schema,
    parse_message,
    tier_groups,
)
from tessera.errors import SchemaError, TierOrderError

BASE_PRE = [True, False, False]
BASE_POST = [True, False, False, False, False, False]

SCHEMA_BUILDERS = {
    'pre': (PRE_CHAIN, lambda flags: frame_schema(flags, BASE_POST)),
    'post': (POST_CHAIN, lambda flags: frame_schema(BASE_PRE, flags)),
    'item': (ITEM_CHAIN, item_schema),
}


def _schema_vectors():
    for group, (chain, _) in SCHEMA_BUILDERS.items():
        for flags in itertools.product([True, False], repeat=len(chain.tiers)):
            label = ''.join('T' if f else 'F' for f in flags)
            yield pytest.param(group, list(flags), id=f"{group}-{label}")


@pytest.mark.unit
class TestTypeTag:

    @pytest.mark.parametrize('dtype,expected', [
        ('?', TypeTag.BOOLEAN),
        ('u1', TypeTag.INT32),
        ('u2', TypeTag.INT32),
        ('u4', TypeTag.INT32),
        ('i4', TypeTag.INT32),
        ('u8', TypeTag.INT64),
        ('f4', TypeTag.FLOAT),
    ])
    def test_from_dtype(self, dtype, expected):
        assert TypeTag.from_dtype(dtype) is expected

    def test_unsupported_dtype_raises(self):
        with pytest.raises(SchemaError):
            TypeTag.from_dtype('U8')


@pytest.mark.unit
class TestFrameSchema:
    """Test the per-port frame schema."""

    def test_message_header(self):
        message = frame_schema(BASE_PRE, BASE_POST).to_message()

        assert message.startswith(
            "message frame_data {\n"
            "  required int32 index;\n"
            "  required int32 port (UINT_8);\n"
            "  required boolean is_follower;\n"
            "  required group pre {\n"
            "    required group position {\n"
            "      required float x;\n"
        )
        assert message.endswith("}\n")

    def test_absent_tiers_omitted(self):
        message = frame_schema(BASE_PRE, BASE_POST).to_message()

        assert 'v1_2' not in message
        assert 'v0_2' not in message
        assert 'optional' not in message

    def test_tiers_nest_inside_parent(self):
        message = frame_schema([True, True, True], BASE_POST).to_message()

        assert (
            "    optional group v1_2 {\n"
            "      required int32 raw_analog_x (UINT_8);\n"
            "      optional group v1_4 {\n"
            "        required float damage;\n"
            "      }\n"
            "    }\n"
        ) in message

    def test_logical_annotations(self):
        message = frame_schema(BASE_PRE, [True, True, True, False, False, False]).to_message()

        assert "required int64 flags (UINT_64);" in message
        assert "required int32 l_cancel (UINT_8);" in message
        assert "required int32 random_seed (UINT_32);" in message

    def test_child_without_parent_raises(self):
        with pytest.raises(TierOrderError):
            frame_schema([True, False, True], BASE_POST)

    @pytest.mark.parametrize('group,flags', list(_schema_vectors()))
    def test_tier_nesting_for_every_presence_vector(self, group, flags):
        """Present tiers nest in chain order; a tier without its parent raises."""
        chain, build = SCHEMA_BUILDERS[group]
        if any(not a and b for a, b in zip(flags, flags[1:])):
            with pytest.raises(TierOrderError):
                build(flags)
        else:
            expected = [tier.name for tier in chain.tiers[1:sum(flags)]]
            assert tier_groups(build(flags), group) == expected

    def test_definition_levels(self):
        schema = frame_schema([True, True, True], [True] * 6)
        levels = {leaf.path: (leaf.max_def, leaf.max_rep) for leaf in schema.leaves()}

        assert levels[('index',)] == (0, 0)
        assert levels[('pre', 'position', 'x')] == (0, 0)
        assert levels[('pre', 'v1_2', 'raw_analog_x')] == (1, 0)
        assert levels[('pre', 'v1_2', 'v1_4', 'damage')] == (2, 0)
        assert levels[('post', 'v0_2', 'v2_0', 'v2_1', 'v3_5', 'v3_8', 'hitlag')] == (5, 0)

    def test_tier_groups(self):
        schema = frame_schema([True, True, False], [True, True, True, False, False, False])

        assert tier_groups(schema, 'pre') == ['v1_2']
        assert tier_groups(schema, 'post') == ['v0_2', 'v2_0']

    def test_arrow_schema(self):
        schema = frame_schema([True, True, False], BASE_POST).arrow_schema()

        assert schema.names == ['index', 'port', 'is_follower', 'pre', 'post']
        assert schema.field('port').type == pa.uint8()
        assert not schema.field('pre').nullable

        pre_type = schema.field('pre').type
        v1_2 = pre_type.field(pre_type.get_field_index('v1_2'))
        assert v1_2.nullable
        assert SCHEMA_METADATA_KEY in schema.metadata


@pytest.mark.unit
class TestItemSchema:
    """Test the item schema."""

    def test_repeated_group(self):
        message = item_schema([True, True, True]).to_message()

        assert "  repeated group item {\n    required int32 id (UINT_32);\n" in message
        assert "      optional group v3_6 {\n        required int32 owner (UINT_8);\n" in message

    def test_levels(self):
        schema = item_schema([True, True, True])
        levels = {leaf.path: (leaf.max_def, leaf.max_rep) for leaf in schema.leaves()}

        assert levels[('index',)] == (0, 0)
        assert levels[('item', 'id')] == (1, 1)
        assert levels[('item', 'position', 'x')] == (1, 1)
        assert levels[('item', 'v3_2', 'misc')] == (2, 1)
        assert levels[('item', 'v3_2', 'v3_6', 'owner')] == (3, 1)

    def test_arrow_list(self):
        field = item_schema([True, False, False]).arrow_schema().field('item')

        assert pa.types.is_list(field.type)
        assert not field.nullable


@pytest.mark.unit
class TestParseMessage:
    """Test parsing message strings back into schema trees."""

    def test_round_trip(self):
        schema = frame_schema([True, True, True], [True] * 6)
        parsed = parse_message(schema.to_message())

        assert parsed.name == 'frame_data'
        assert parsed.to_message() == schema.to_message()

    def test_check_schema_returns_message(self):
        schema = item_schema([True, True, False])
        assert check_schema(schema) == schema.to_message()

    def test_missing_semicolon_raises(self):
        with pytest.raises(SchemaError):
            parse_message("message m {\n  required int32 a\n}\n")

    def test_unknown_type_raises(self):
        with pytest.raises(SchemaError) as exc_info:
            parse_message("message m {\n  required int128 a;\n}\n")

        assert 'int128' in str(exc_info.value)

    def test_unknown_repetition_raises(self):
        with pytest.raises(SchemaError):
            parse_message("message m {\n  sometimes int32 a;\n}\n")

    def test_unterminated_raises(self):
        with pytest.raises(SchemaError):
            parse_message("message m {\n  required int32 a;\n")

    def test_trailing_content_raises(self):
        with pytest.raises(SchemaError):
            parse_message("message m {\n}\nextra")
