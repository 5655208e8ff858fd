"""Command-line interface for hexagon binning."""

import logging
import sys
from pathlib import Path

import click

from . import __version__
from .config import AggregationSpec, HexbinConfig
from .errors import HexbinError
from .pipeline import HexbinPipeline


def setup_logging(verbose: bool) -> None:
    """Configure logging based on verbosity level."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )


def _parse_nbins(value: str):
    """Parse ``40`` or ``40x30``."""
    try:
        parts = [int(p) for p in value.lower().split("x")]
    except ValueError:
        raise click.BadParameter(f"Expected an integer or NXxNY, got '{value}'")
    if len(parts) == 1:
        return parts[0]
    if len(parts) == 2:
        return parts
    raise click.BadParameter(f"Expected an integer or NXxNY, got '{value}'")


def _run_pipeline(config: HexbinConfig) -> None:
    logger = logging.getLogger(__name__)

    # Validate configuration
    try:
        config.validate()
    except (FileNotFoundError, ValueError) as e:
        logger.error(f"Configuration error: {e}")
        raise click.ClickException(str(e))

    config.output_dir.mkdir(parents=True, exist_ok=True)

    pipeline = HexbinPipeline(config)
    try:
        pipeline.run()
        logger.info("Hexbin summary completed successfully!")
    except (HexbinError, OSError, ValueError) as e:
        logger.error(f"Pipeline failed: {e}")
        raise click.ClickException(str(e))


@click.group()
@click.version_option(version=__version__)
def main():
    """hexmeta CLI.

    Summarize cell attributes over a hexagonal tiling of a 2-D embedding.
    """
    pass


@main.command()
@click.option(
    "--input", "-i",
    "input_path",
    required=True,
    type=click.Path(exists=True, path_type=Path),
    help="Path to input H5AD file",
)
@click.option(
    "--output", "-o",
    "output_dir",
    required=True,
    type=click.Path(path_type=Path),
    help="Output directory for hexbin results",
)
@click.option(
    "--embedding", "-e",
    default="X_umap",
    help="Embedding key in adata.obsm (default: X_umap)",
)
@click.option(
    "--nbins", "-n",
    default="80",
    help="Hexagons across the x-range, or NXxNY (default: 80)",
)
@click.option(
    "--aggregate", "-a",
    "aggregations",
    multiple=True,
    required=True,
    help="column:action to summarize (can specify multiple). "
         "Actions: majority, prop, prop_0, mode, mean, median",
)
@click.option(
    "--layer",
    default=None,
    help="Layer to read gene values from (default: X)",
)
@click.option(
    "--workers",
    "max_workers",
    default=None,
    type=int,
    help="Threads for concurrent aggregation",
)
@click.option(
    "--plot",
    is_flag=True,
    default=False,
    help="Write one figure per result column",
)
@click.option(
    "--format", "-f",
    "plot_format",
    default="png",
    type=click.Choice(["png", "svg", "pdf"]),
    help="Figure format (default: png)",
)
@click.option(
    "--name",
    default=None,
    help="Dataset name for metadata",
)
@click.option(
    "--verbose", "-v",
    is_flag=True,
    help="Enable verbose logging",
)
def run(
    input_path: Path,
    output_dir: Path,
    embedding: str,
    nbins: str,
    aggregations: tuple[str, ...],
    layer: str | None,
    max_workers: int | None,
    plot: bool,
    plot_format: str,
    name: str | None,
    verbose: bool,
):
    """Run the hexbin pipeline.

    Example:
        hexmeta run -i data.h5ad -o ./hexbin -n 40 -a cell_type:majority -a n_genes:median
    """
    setup_logging(verbose)
    logger = logging.getLogger(__name__)

    logger.info(f"Input: {input_path}")
    logger.info(f"Output: {output_dir}")

    try:
        specs = [AggregationSpec.parse(a) for a in aggregations]
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--aggregate")

    config = HexbinConfig(
        input_path=input_path,
        output_dir=output_dir,
        embedding=embedding,
        nbins=_parse_nbins(nbins),
        aggregations=specs,
        layer=layer,
        max_workers=max_workers,
        plot=plot,
        plot_format=plot_format,
        dataset_name=name,
    )
    _run_pipeline(config)


@main.command()
@click.option(
    "--config", "-c",
    "config_path",
    required=True,
    type=click.Path(exists=True, path_type=Path),
    help="Path to YAML configuration file",
)
@click.option(
    "--verbose", "-v",
    is_flag=True,
    help="Enable verbose logging",
)
def from_config(config_path: Path, verbose: bool):
    """Run the hexbin pipeline from a YAML configuration file.

    Example:
        hexmeta from-config -c config.yaml
    """
    setup_logging(verbose)
    logger = logging.getLogger(__name__)

    logger.info(f"Loading configuration from: {config_path}")

    try:
        config = HexbinConfig.from_yaml(config_path)
    except (TypeError, ValueError, KeyError) as e:
        raise click.ClickException(f"Invalid configuration file: {e}")
    _run_pipeline(config)


@main.command()
@click.option(
    "--output", "-o",
    "output_path",
    required=True,
    type=click.Path(path_type=Path),
    help="Output path for example configuration",
)
def init_config(output_path: Path):
    """Generate an example configuration file.

    Example:
        hexmeta init-config -o config.yaml
    """
    config = HexbinConfig(
        input_path=Path("data.h5ad"),
        output_dir=Path("./hexbin"),
        nbins=40,
        aggregations=[
            AggregationSpec("cell_type", "majority"),
            AggregationSpec("cell_type", "prop"),
            AggregationSpec("n_genes_by_counts", "median"),
        ],
        plot=True,
        dataset_name="Example Dataset",
    )
    config.to_yaml(output_path)
    click.echo(f"Configuration saved to: {output_path}")


if __name__ == "__main__":
    main()
