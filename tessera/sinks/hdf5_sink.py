"""
HDF5 Sink

Flat output: one dataset per leaf column, without definition/repetition
levels. Layout:

    /frame_index                    (frames,)
    /leader/pre/position_x          (ports, frames)
    /leader/pre/v1_2/raw_analog_x   optional tiers nest as sub-groups
    /leader/pre/v1_2/v1_4/damage
    /follower/...                   same shape as leader; zero where unused
    /start/random_seed              (frames,), only if the replay has start blocks
    /end/v3_7/latest_finalized_frame
    /item/id                        (frames, max_items), empty slots hold 0xFFFFFFFF
    /item/count                     (frames,), items held by each frame

File attributes are scalars or short per-port arrays; anything sized by the
frame count is a dataset.
"""

import logging
from pathlib import Path
from typing import Optional, Union

import h5py
import numpy as np

from tessera.config.conversion_config import ConversionConfig
from tessera.config.field_config import ITEM_ID_SENTINEL
from tessera.encoding.level_encoder import flat_arrays
from tessera.frames.characters import Character, character_name
from tessera.sinks.atomic import atomic_output
from tessera.transform.column_tree import ColumnTree

logger = logging.getLogger('tessera.sinks')

FORMAT_VERSION = '1.0'


def _attach_character_names(hf: h5py.File, tree: ColumnTree) -> None:
    """Label the post-state character columns with their enum names."""
    codes = np.array([c.value for c in Character], dtype=np.uint8)
    names = np.array([character_name(c) for c in Character], dtype=h5py.string_dtype())

    slots = ['leader', 'follower'] if 'follower' in hf else ['leader']
    for slot in slots:
        ds = hf[f'{slot}/post/character']
        ds.attrs['enum_values'] = codes
        ds.attrs['enum_names'] = names

    # Resident character of each port, as seen on the first frame
    first = tree.leader.post['character'][:, 0]
    hf['leader'].attrs['character_names'] = np.array(
        [character_name(int(c)) or '' for c in first], dtype=h5py.string_dtype()
    )


def write_hdf5(tree: ColumnTree, path: Union[str, Path],
               config: Optional[ConversionConfig] = None) -> Path:
    """
    Write a ColumnTree as a flat HDF5 file.

    Args:
        tree: Populated column tree
        path: Destination .h5 file
        config: Sink settings (max_items, enum_names, follower groups)

    Returns:
        Path of the written file

    Raises:
        ItemCapacityError: If a frame holds more than config.max_items items
    """
    config = config or ConversionConfig()
    path = Path(path)

    # Padding runs before the file is opened so capacity errors leave no output
    arrays = flat_arrays(tree, config.max_items, include_followers=config.write_follower_groups)

    with atomic_output(path) as tmp:
        with h5py.File(tmp, 'w') as hf:
            hf.attrs['format_version'] = FORMAT_VERSION
            hf.attrs['num_frames'] = tree.num_frames
            hf.attrs['ports'] = np.asarray(tree.ports, dtype=np.uint8)
            hf.attrs['max_items'] = config.max_items
            hf.attrs['item_id_sentinel'] = np.uint32(ITEM_ID_SENTINEL)

            # Blocks whose base tier has no columns still get their group
            for name, block in (('start', tree.start), ('end', tree.end)):
                if block is not None:
                    hf.require_group(name)

            for key, array in arrays.items():
                group = hf.require_group('/'.join(key[:-1])) if len(key) > 1 else hf
                group.create_dataset(key[-1], data=array)

            # Items held by each frame, shape (frames,)
            hf.require_group('item').create_dataset('count', data=tree.items.lengths)

            if config.enum_names:
                _attach_character_names(hf, tree)

    logger.info(f"Wrote {len(arrays)} datasets to {path}")
    return path
