"""IO module for host container adapters and result writers."""

from .sources import AnnDataSource, DataSource, FrameSource, as_source
from .zarr_writer import ZarrHexbinWriter

__all__ = ["AnnDataSource", "DataSource", "FrameSource", "as_source", "ZarrHexbinWriter"]
