"""ClipArranger: multi-track timeline arrangement engine."""

from cliparranger.utils.config import APP_VERSION as __version__

__all__ = ["__version__"]
