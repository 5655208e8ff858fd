#!/usr/bin/env python3
"""Print the embeddings and summarizable obs columns of an H5AD file."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any

try:
    import anndata
except ImportError:
    sys.exit(
        "Missing dependency: anndata.\n"
        "Install with: pip install -e ."
    )

from hexmeta.binning.aggregator import ActionKind, CategoricalAttribute, as_attribute


def truncate_list(items: list[str], max_show: int = 10) -> list[str]:
    """Return list with truncation notice if too long."""
    if len(items) <= max_show:
        return items
    return items[:max_show] + [f"... and {len(items) - max_show} more"]


def get_info(path: Path) -> dict[str, Any]:
    """Extract embedding and obs column info from an h5ad file."""
    adata = anndata.read_h5ad(path, backed="r")

    info: dict[str, Any] = {
        "file": str(path),
        "n_obs": adata.n_obs,
        "n_vars": adata.n_vars,
    }

    # obsm (embeddings usable for binning need >= 2 dimensions)
    obsm_info = {}
    for k in adata.obsm.keys():
        shape = list(adata.obsm[k].shape)
        obsm_info[k] = {"shape": shape, "binnable": len(shape) == 2 and shape[1] >= 2}
    info["obsm"] = obsm_info

    # obs columns with the actions each one supports
    columns = {}
    for col in adata.obs.columns:
        attr = as_attribute(adata.obs[col], name=col)
        categorical = isinstance(attr, CategoricalAttribute)
        columns[col] = {
            "kind": "categorical" if categorical else "numeric",
            "n_levels": len(attr.levels) if categorical else None,
            "actions": [a.value for a in ActionKind if a.is_categorical == categorical],
        }
    info["obs"] = columns

    hexbin = adata.uns.get("hexbin", {}) if adata.uns else {}
    info["cached_hexbins"] = {
        str(emb): sorted(str(k) for k in entries.keys())
        for emb, entries in dict(hexbin.get("results", {})).items()
    }

    adata.file.close()
    return info


def print_human(info: dict[str, Any]) -> None:
    """Print info in human-readable format."""
    print(f"File: {info['file']}")
    print(f"Cells (n_obs): {info['n_obs']:,}")
    print(f"Genes (n_vars): {info['n_vars']:,}")

    print()
    obsm = info["obsm"]
    if obsm:
        print(f"Embeddings (obsm) [{len(obsm)}]:")
        for k, item in obsm.items():
            marker = "" if item["binnable"] else "  (not binnable)"
            print(f"  {k}: {item['shape']}{marker}")
    else:
        print("Embeddings (obsm): None")

    print()
    obs = info["obs"]
    print(f"obs columns ({len(obs)}):")
    for name in truncate_list(list(obs.keys()), 30):
        item = obs.get(name)
        if item is None:
            print(f"  {name}")
            continue
        levels = f", {item['n_levels']} levels" if item["n_levels"] is not None else ""
        print(f"  {name}: {item['kind']}{levels} -> {', '.join(item['actions'])}")

    cached = info["cached_hexbins"]
    if cached:
        print()
        print("Cached hexbins (uns['hexbin']):")
        for emb, keys in cached.items():
            print(f"  {emb}: nbins {', '.join(keys)}")


def main() -> int:
    parser = argparse.ArgumentParser(description="Print embeddings and summarizable obs columns of an H5AD file.")
    parser.add_argument("-i", "--input", required=True, type=Path, help="Path to H5AD file")
    parser.add_argument("--json", action="store_true", help="Output as JSON")
    args = parser.parse_args()

    if not args.input.exists():
        print(f"Error: file not found: {args.input}", file=sys.stderr)
        return 1

    info = get_info(args.input)

    if args.json:
        print(json.dumps(info, indent=2))
    else:
        print_human(info)

    return 0


if __name__ == "__main__":
    sys.exit(main())
