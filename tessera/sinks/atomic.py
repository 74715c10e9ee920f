"""Write-then-rename helper shared by the file sinks."""

import logging
import os
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Union

logger = logging.getLogger('tessera.sinks')


@contextmanager
def atomic_output(path: Union[str, Path]) -> Iterator[Path]:
    """
    Yield a temporary path next to `path`; move it into place on success.

    On any failure the temporary file is removed and the error re-raised, so
    the destination either holds a complete file or is left untouched.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(path.name + '.tmp')

    try:
        yield tmp
        os.replace(tmp, path)
    except Exception:
        if tmp.exists():
            tmp.unlink()
            logger.debug(f"Removed partial output {tmp}")
        raise
