"""
Tessera Transform Module

Turns a decoded frame sequence into typed columns.

## Quick Start

```python
from tessera.transform import resolve_tiers, transform

depths = resolve_tiers(frames)
tree = transform(frames, depths)

tree.leader.post['damage'][port_idx]      # damage of one port, every frame
tree.items['id'][tree.items.offsets[f]]   # first item of frame position f
```
"""

from tessera.transform.tier_resolver import TierDepths, chain_depth, resolve_tiers
from tessera.transform.column_tree import (
    ChainColumns,
    ColumnTree,
    ItemColumns,
    PortColumns,
)
from tessera.transform.columnar_transform import transform

__all__ = [
    # Tier resolution
    'TierDepths',
    'chain_depth',
    'resolve_tiers',

    # Column tree
    'ChainColumns',
    'ColumnTree',
    'ItemColumns',
    'PortColumns',

    # Transform
    'transform',
]
