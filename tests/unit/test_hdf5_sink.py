"""
Tests for tessera.sinks.hdf5_sink module.
"""

import h5py
import numpy as np
import pytest

from tessera.config.conversion_config import ConversionConfig
from tessera.config.field_config import ITEM_ID_SENTINEL
from tessera.errors import ItemCapacityError
from tessera.sinks.hdf5_sink import write_hdf5
from tessera.transform import transform


@pytest.mark.integration
class TestWriteHdf5:
    """Test the flat HDF5 layout."""

    def test_base_layout(self, base_frames, tmp_path):
        path = write_hdf5(transform(base_frames), tmp_path / 'replay.h5')

        with h5py.File(path, 'r') as hf:
            assert hf['leader/pre/position_x'].shape == (2, 3)
            assert hf['follower/post/damage'].shape == (2, 3)
            assert hf['frame_index'].shape == (3,)
            assert 'start' not in hf
            assert 'end' not in hf
            assert 'v1_2' not in hf['leader/pre']
            np.testing.assert_array_equal(hf['leader/post/damage'][1], [10.0, 11.0, 12.0])

    def test_tiers_as_nested_groups(self, full_frames, tmp_path):
        path = write_hdf5(transform(full_frames), tmp_path / 'replay.h5')

        with h5py.File(path, 'r') as hf:
            assert 'leader/pre/v1_2/raw_analog_x' in hf
            assert 'leader/pre/v1_2/v1_4/damage' in hf
            assert 'leader/post/v0_2/v2_0/v2_1/v3_5/v3_8/hitlag' in hf
            assert 'leader/post/v0_2/v2_0/v2_1/v3_5/velocities_autogenous_x' in hf
            assert 'end/v3_7/latest_finalized_frame' in hf
            np.testing.assert_array_equal(hf['start/random_seed'][:], [1000, 1001, 1002, 1003])

    def test_items_padded_with_sentinel(self, full_frames, tmp_path):
        path = write_hdf5(transform(full_frames), tmp_path / 'replay.h5')

        with h5py.File(path, 'r') as hf:
            ids = hf['item/id'][:]
            assert ids.shape == (4, 16)
            assert ids.dtype == np.uint32
            assert (ids[0] == ITEM_ID_SENTINEL).all()
            np.testing.assert_array_equal(ids[1, :3], [100, 101, ITEM_ID_SENTINEL])
            np.testing.assert_array_equal(hf['item/count'][:], [0, 2, 1, 0])
            assert 'item_counts' not in hf.attrs
            assert hf['item/v3_2/v3_6/owner'][1, 1] == 1

    def test_max_items_from_config(self, full_frames, tmp_path):
        config = ConversionConfig(max_items=2, output_formats=['hdf5'])
        path = write_hdf5(transform(full_frames), tmp_path / 'replay.h5', config)

        with h5py.File(path, 'r') as hf:
            assert hf['item/id'].shape == (4, 2)
            assert hf.attrs['max_items'] == 2

    def test_over_capacity_leaves_no_file(self, full_frames, tmp_path):
        config = ConversionConfig(max_items=1)

        with pytest.raises(ItemCapacityError):
            write_hdf5(transform(full_frames), tmp_path / 'replay.h5', config)

        assert list(tmp_path.iterdir()) == []

    def test_enum_names(self, popo_frames, tmp_path):
        config = ConversionConfig(enum_names=True)
        path = write_hdf5(transform(popo_frames), tmp_path / 'replay.h5', config)

        with h5py.File(path, 'r') as hf:
            names = [n.decode() if isinstance(n, bytes) else n
                     for n in hf['leader'].attrs['character_names']]
            assert names == ['Popo', 'Fox']

            ds = hf['leader/post/character']
            codes = list(ds.attrs['enum_values'])
            assert codes[10] == 10
            assert 'enum_names' in hf['follower/post/character'].attrs

    def test_no_enum_names_by_default(self, base_frames, tmp_path):
        path = write_hdf5(transform(base_frames), tmp_path / 'replay.h5')

        with h5py.File(path, 'r') as hf:
            assert 'character_names' not in hf['leader'].attrs
            assert 'enum_names' not in hf['leader/post/character'].attrs

    def test_file_attributes(self, base_frames, tmp_path):
        path = write_hdf5(transform(base_frames), tmp_path / 'replay.h5')

        with h5py.File(path, 'r') as hf:
            assert hf.attrs['num_frames'] == 3
            np.testing.assert_array_equal(hf.attrs['ports'], [0, 1])
            assert hf.attrs['item_id_sentinel'] == ITEM_ID_SENTINEL

    def test_long_replay(self, frame_builder, tmp_path):
        """Replays longer than a few minutes keep every per-frame array out of attributes."""
        num_frames = 10_000
        frames = frame_builder(
            num_frames=num_frames,
            num_ports=2,
            item_depth=1,
            items_per_frame=[i % 3 for i in range(num_frames)],
        )
        path = write_hdf5(transform(frames), tmp_path / 'replay.h5')

        with h5py.File(path, 'r') as hf:
            assert hf.attrs['num_frames'] == num_frames
            assert hf['frame_index'].shape == (num_frames,)
            assert hf['leader/post/damage'].shape == (2, num_frames)
            assert hf['item/count'].shape == (num_frames,)
            np.testing.assert_array_equal(hf['item/count'][:6], [0, 1, 2, 0, 1, 2])
            assert all(np.ndim(value) <= 1 and np.size(value) <= 16
                       for value in hf.attrs.values())
