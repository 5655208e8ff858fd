"""Tests for pipeline configuration."""

from pathlib import Path

import pytest
import yaml

from hexmeta.config import AggregationSpec, HexbinConfig
from hexmeta.errors import InvalidParameterError, UnsupportedActionError


@pytest.fixture
def input_file(tmp_path):
    path = tmp_path / "data.h5ad"
    path.write_bytes(b"")
    return path


def _config(input_file, tmp_path, **kwargs):
    kwargs.setdefault("aggregations", ["cell_type:majority"])
    return HexbinConfig(input_path=input_file, output_dir=tmp_path / "out", **kwargs)


class TestAggregationSpec:
    def test_parse(self):
        assert AggregationSpec.parse("cell_type:majority") == AggregationSpec("cell_type", "majority")

    def test_parse_keeps_colons_in_column(self):
        spec = AggregationSpec.parse("group:sub:prop")
        assert spec.column == "group:sub"
        assert spec.action == "prop"

    @pytest.mark.parametrize("text", ["cell_type", ":mean", "cell_type:"])
    def test_parse_malformed(self, text):
        with pytest.raises(ValueError):
            AggregationSpec.parse(text)

    def test_coerce_dict(self):
        spec = AggregationSpec.coerce({"column": "n_genes", "action": "median"})
        assert spec == AggregationSpec("n_genes", "median")


class TestHexbinConfig:
    def test_yaml_round_trip(self, input_file, tmp_path):
        config = _config(
            input_file,
            tmp_path,
            nbins=[40, 30],
            aggregations=["cell_type:majority", AggregationSpec("n_genes", "median")],
            plot=True,
            dataset_name="PBMC",
        )
        path = tmp_path / "config.yaml"
        config.to_yaml(path)

        data = yaml.safe_load(path.read_text())
        assert data["aggregations"][1] == {"column": "n_genes", "action": "median"}

        loaded = HexbinConfig.from_yaml(path)
        assert loaded == config
        assert isinstance(loaded.input_path, Path)

    def test_valid_config(self, input_file, tmp_path):
        _config(input_file, tmp_path, nbins=(20, 10)).validate()

    def test_missing_input(self, tmp_path):
        config = _config(tmp_path / "missing.h5ad", tmp_path)
        with pytest.raises(FileNotFoundError):
            config.validate()

    def test_no_aggregations(self, input_file, tmp_path):
        with pytest.raises(ValueError):
            _config(input_file, tmp_path, aggregations=[]).validate()

    def test_unknown_action(self, input_file, tmp_path):
        with pytest.raises(UnsupportedActionError):
            _config(input_file, tmp_path, aggregations=["cell_type:sum"]).validate()

    def test_bad_resolution(self, input_file, tmp_path):
        with pytest.raises(InvalidParameterError):
            _config(input_file, tmp_path, nbins=1).validate()

    @pytest.mark.parametrize(
        "kwargs",
        [{"max_workers": 0}, {"chunk_size": 0}, {"plot_format": "jpg"}, {"embedding": " "}],
    )
    def test_invalid_settings(self, input_file, tmp_path, kwargs):
        with pytest.raises(ValueError):
            _config(input_file, tmp_path, **kwargs).validate()
