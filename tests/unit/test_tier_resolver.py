"""
Unit tests for tessera.transform.tier_resolver module.
"""

import pytest

from tessera.errors import EmptyInputError
from tessera.frames.records import Frame
from tessera.transform.tier_resolver import TierDepths, resolve_tiers


@pytest.mark.unit
class TestResolveTiers:
    """Test per-batch tier resolution."""

    def test_base_frames(self, base_frames):
        depths = resolve_tiers(base_frames)

        assert depths == TierDepths(pre=0, post=0, item=0, start=-1, end=-1)

    def test_full_frames(self, full_frames):
        depths = resolve_tiers(full_frames)

        assert depths.pre == 2
        assert depths.post == 5
        assert depths.item == 2
        assert depths.start == 0
        assert depths.end == 1

    def test_partial_depths(self, frame_builder):
        frames = frame_builder(pre_depth=1, post_depth=3)
        depths = resolve_tiers(frames)

        assert depths.pre == 1
        assert depths.post == 3

    def test_item_depth_from_first_item_in_batch(self, frame_builder):
        """Frame zero has no items; the first item found decides the depth."""
        frames = frame_builder(item_depth=1, items_per_frame=[0, 0, 2])
        assert resolve_tiers(frames).item == 1

    def test_no_items_keeps_base_tier(self, frame_builder):
        frames = frame_builder(item_depth=2)
        assert resolve_tiers(frames).item == 0

    def test_trusts_frame_zero(self, frame_builder):
        """Later frames with deeper tiers do not change the resolved depth."""
        frames = frame_builder(num_frames=2, pre_depth=0)
        deeper = frame_builder(num_frames=2, pre_depth=2)
        frames[1] = deeper[1]

        assert resolve_tiers(frames).pre == 0

    def test_end_presence_from_last_frame(self, frame_builder):
        frames = frame_builder(num_frames=3, end_depth=1)
        frames[0].end = None

        assert resolve_tiers(frames).end == 1

    def test_empty_input_raises(self):
        with pytest.raises(EmptyInputError):
            resolve_tiers([])

    def test_no_ports_raises(self):
        with pytest.raises(EmptyInputError) as exc_info:
            resolve_tiers([Frame(index=-123, ports=[])])

        assert exc_info.value.context['frame'] == -123


@pytest.mark.unit
class TestTierDepths:
    """Test the TierDepths value."""

    def test_flags(self):
        depths = TierDepths(pre=1, post=2, item=0)

        assert depths.flags('pre') == [True, True, False]
        assert depths.flags('post') == [True, True, True, False, False, False]
        assert depths.flags('item') == [True, False, False]
        assert depths.flags('start') == [False]

    def test_depth_by_name(self):
        depths = TierDepths(pre=1, post=2, item=0, end=1)

        assert depths.depth('post') == 2
        assert depths.depth('end') == 1
