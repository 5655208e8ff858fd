"""Configuration schema for the hexbin pipeline."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union

import yaml

from .binning.aggregator import ActionKind
from .binning.grid import parse_resolution


@dataclass
class AggregationSpec:
    """One column to summarize and the action to summarize it with."""

    column: str
    action: str

    @classmethod
    def parse(cls, text: str) -> "AggregationSpec":
        """Parse ``column:action`` (the last colon separates the action)."""
        column, sep, action = str(text).rpartition(":")
        if not sep or not column or not action:
            raise ValueError(f"Aggregation must look like 'column:action', got '{text}'")
        return cls(column=column, action=action)

    @classmethod
    def coerce(cls, item: Union[str, dict, "AggregationSpec"]) -> "AggregationSpec":
        if isinstance(item, cls):
            return item
        if isinstance(item, dict):
            return cls(column=str(item["column"]), action=str(item["action"]))
        return cls.parse(item)


@dataclass
class HexbinConfig:
    """Configuration for the hexbin pipeline."""

    # Input/Output
    input_path: Path
    output_dir: Path

    # Binning settings
    embedding: str = "X_umap"
    nbins: Union[int, list[int]] = 80  # Hexagons across x, or [nx, ny]

    # Aggregation settings
    aggregations: list[AggregationSpec] = field(default_factory=list)
    layer: Optional[str] = None  # Layer to read gene values from (default: X)
    max_workers: Optional[int] = None  # Threads for concurrent aggregation

    # Output settings
    chunk_size: int = 4096
    plot: bool = False
    plot_format: str = "png"
    dpi: int = 150

    # Metadata
    dataset_name: Optional[str] = None

    def __post_init__(self) -> None:
        self.aggregations = [AggregationSpec.coerce(a) for a in self.aggregations]

    @classmethod
    def from_yaml(cls, path: Path) -> "HexbinConfig":
        """Load configuration from a YAML file."""
        with open(path) as f:
            data = yaml.safe_load(f)

        # Convert path strings to Path objects
        if "input_path" in data:
            data["input_path"] = Path(data["input_path"])
        if "output_dir" in data:
            data["output_dir"] = Path(data["output_dir"])

        return cls(**data)

    def to_yaml(self, path: Path) -> None:
        """Save configuration to a YAML file."""
        data = {
            "input_path": str(self.input_path),
            "output_dir": str(self.output_dir),
            "embedding": self.embedding,
            "nbins": list(self.nbins) if isinstance(self.nbins, (list, tuple)) else self.nbins,
            "aggregations": [{"column": a.column, "action": a.action} for a in self.aggregations],
            "layer": self.layer,
            "max_workers": self.max_workers,
            "chunk_size": self.chunk_size,
            "plot": self.plot,
            "plot_format": self.plot_format,
            "dpi": self.dpi,
            "dataset_name": self.dataset_name,
        }
        with open(path, "w") as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)

    def validate(self) -> None:
        """Validate configuration parameters."""
        if not self.input_path.exists():
            raise FileNotFoundError(f"Input file not found: {self.input_path}")

        if not str(self.embedding).strip():
            raise ValueError("No embedding key provided")

        if isinstance(self.nbins, tuple):
            self.nbins = list(self.nbins)
        parse_resolution(self.nbins)

        if not self.aggregations:
            raise ValueError("No aggregations requested (use column:action, e.g. cell_type:majority)")
        for spec in self.aggregations:
            ActionKind.parse(spec.action)

        if self.max_workers is not None and self.max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {self.max_workers}")

        if self.chunk_size < 1:
            raise ValueError(f"chunk_size must be positive, got {self.chunk_size}")

        if self.plot_format not in ["png", "svg", "pdf"]:
            raise ValueError(f"plot_format must be png, svg, or pdf, got {self.plot_format}")
