"""
Conversion Pipeline

Orchestrates the conversion workflow: frames -> tier resolution -> columns ->
encoded output files. Every configured sink runs for a replay, or none of its
output is kept.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from tessera.config.conversion_config import ConversionConfig
from tessera.errors import ConversionError
from tessera.frames.records import Frame
from tessera.sinks.hdf5_sink import write_hdf5
from tessera.sinks.parquet_sink import write_frames, write_items
from tessera.transform.columnar_transform import transform
from tessera.transform.tier_resolver import TierDepths, resolve_tiers

logger = logging.getLogger('tessera.pipeline')


@dataclass
class PipelineProgress:
    """Progress information for batch conversions."""
    current: int
    total: int
    replay_id: str
    status: str  # 'converting', 'complete', 'failed'
    message: str
    error: Optional[str] = None


@dataclass
class ConversionResult:
    """Outcome of converting one replay."""
    success: bool
    replay_id: str
    num_frames: int = 0
    num_ports: int = 0
    depths: Optional[TierDepths] = None
    paths: Dict[str, str] = field(default_factory=dict)
    sizes: Dict[str, int] = field(default_factory=dict)
    error: Optional[str] = None

    @property
    def total_bytes(self) -> int:
        return sum(self.sizes.values())


@dataclass
class BatchResult:
    """Result of converting several replays."""
    total_replays: int
    successful: int
    failed: int
    total_frames: int
    total_bytes: int
    results: List[ConversionResult]
    failed_replays: List[Dict]  # List of {replay_id, error} dicts


class ConversionPipeline:
    """
    High-level replay conversion orchestrator.

    Example:
        >>> from tessera import ConversionConfig, ConversionPipeline
        >>>
        >>> config = ConversionConfig.from_dict({'output_formats': ['parquet', 'hdf5']})
        >>> pipeline = ConversionPipeline(config)
        >>> result = pipeline.convert(frames, './output', 'game_001')
        >>> result.paths
        {'frames': 'output/game_001.frames.parquet', 'items': ..., 'hdf5': ...}
    """

    def __init__(
        self,
        config: Optional[ConversionConfig] = None,
        progress_callback: Optional[Callable[[PipelineProgress], None]] = None
    ):
        """
        Initialize the conversion pipeline.

        Args:
            config: Sink settings (uses defaults if not provided)
            progress_callback: Optional callback for batch progress updates
        """
        self.config = config or ConversionConfig()
        self.config.validate()
        self.progress_callback = progress_callback or self._default_progress_callback

    def _default_progress_callback(self, progress: PipelineProgress):
        """Default progress callback that logs each step."""
        message = f"[{progress.current}/{progress.total}] {progress.replay_id}: {progress.message}"
        if progress.error:
            logger.warning(f"{message} ({progress.error})")
        else:
            logger.info(message)

    def output_paths(self, output_dir: str, replay_id: str) -> Dict[str, Path]:
        """Destination file per output kind for one replay."""
        output_dir = Path(output_dir)
        paths = {}
        if 'parquet' in self.config.output_formats:
            paths['frames'] = output_dir / f"{replay_id}.frames.parquet"
            paths['items'] = output_dir / f"{replay_id}.items.parquet"
        if 'hdf5' in self.config.output_formats:
            paths['hdf5'] = output_dir / f"{replay_id}.h5"
        return paths

    def _writers(self) -> List[Tuple[str, Callable]]:
        writers = []
        if 'parquet' in self.config.output_formats:
            writers.append(('frames', write_frames))
            writers.append(('items', write_items))
        if 'hdf5' in self.config.output_formats:
            writers.append(('hdf5', write_hdf5))
        return writers

    def convert(self, frames: Sequence[Frame], output_dir: str, replay_id: str) -> ConversionResult:
        """
        Convert one replay's frames and write every configured output.

        Args:
            frames: Ordered frame records of the replay
            output_dir: Directory to save output files
            replay_id: Base name of the output files

        Returns:
            ConversionResult; on failure success is False, error holds the
            message and no output file of this replay remains
        """
        paths = self.output_paths(output_dir, replay_id)
        written: List[Path] = []

        try:
            depths = resolve_tiers(frames)
            tree = transform(frames, depths)
            logger.info(
                f"Converting {replay_id}: {tree.num_frames} frames, {tree.num_ports} ports, "
                f"tiers pre={depths.pre} post={depths.post} item={depths.item}"
            )

            for kind, writer in self._writers():
                written.append(writer(tree, paths[kind], self.config))

        except (ConversionError, OSError) as e:
            error_msg = str(e)
            logger.error(f"Failed to convert {replay_id}: {error_msg}")
            for path in written:
                if path.exists():
                    path.unlink()
            return ConversionResult(success=False, replay_id=replay_id, error=error_msg)

        return ConversionResult(
            success=True,
            replay_id=replay_id,
            num_frames=tree.num_frames,
            num_ports=tree.num_ports,
            depths=depths,
            paths={kind: str(p) for kind, p in paths.items()},
            sizes={kind: p.stat().st_size for kind, p in paths.items()},
        )

    def convert_many(self, replays: Dict[str, Sequence[Frame]], output_dir: str) -> BatchResult:
        """
        Convert several replays one after another.

        Args:
            replays: Mapping of replay_id to its ordered frames
            output_dir: Directory to save output files

        Returns:
            BatchResult with statistics
        """
        total = len(replays)
        results = []
        failed_replays = []

        for i, (replay_id, frames) in enumerate(replays.items(), 1):
            self.progress_callback(PipelineProgress(
                current=i,
                total=total,
                replay_id=replay_id,
                status='converting',
                message='Converting frames...'
            ))

            result = self.convert(frames, output_dir, replay_id)
            results.append(result)

            if result.success:
                self.progress_callback(PipelineProgress(
                    current=i,
                    total=total,
                    replay_id=replay_id,
                    status='complete',
                    message=f'Complete ({result.num_frames} frames)'
                ))
            else:
                failed_replays.append({'replay_id': replay_id, 'error': result.error})
                self.progress_callback(PipelineProgress(
                    current=i,
                    total=total,
                    replay_id=replay_id,
                    status='failed',
                    message='Failed',
                    error=result.error
                ))

        successful = [r for r in results if r.success]
        logger.info(f"Converted {len(successful)}/{total} replays")

        return BatchResult(
            total_replays=total,
            successful=len(successful),
            failed=len(failed_replays),
            total_frames=sum(r.num_frames for r in successful),
            total_bytes=sum(r.total_bytes for r in successful),
            results=results,
            failed_replays=failed_replays,
        )
