from __future__ import annotations

import os
import tempfile
from pathlib import Path


def configure_plotting_env() -> None:
    """Point Matplotlib at a writable cache directory before it is imported."""
    cache_root = Path(tempfile.gettempdir()) / "gelcompare_cache"
    mpl_cache = cache_root / "matplotlib"
    mpl_cache.mkdir(parents=True, exist_ok=True)

    os.environ.setdefault("XDG_CACHE_HOME", str(cache_root))
    os.environ.setdefault("MPLCONFIGDIR", str(mpl_cache))
