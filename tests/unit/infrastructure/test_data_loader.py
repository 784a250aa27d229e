"""
Unit tests for infrastructure/data_loader.py

Tests:
- Graph -> Polars frames (nodes, edges, components)
- export_graph for parquet and csv
- PolarsLoader schema validation and graph construction
"""
import polars as pl
import pytest

from core.kosaraju import KosarajuSCC
from infrastructure.data_loader import (
    DataIntegrityError,
    PolarsLoader,
    SchemaValidationError,
    components_frame,
    edges_frame,
    export_graph,
    nodes_frame,
)


# =============================================================================
# FRAMES
# =============================================================================

def test_nodes_frame_degrees(chain_graph):
    df = nodes_frame(chain_graph)

    assert df.columns == ["handle", "following", "followers"]
    assert df["handle"].to_list() == ["@a", "@b", "@c"]
    assert df["following"].to_list() == [1, 1, 0]
    assert df["followers"].to_list() == [0, 1, 1]


def test_nodes_frame_with_components(triangle_graph):
    result = KosarajuSCC().compute_result(triangle_graph)
    df = nodes_frame(triangle_graph, result)

    assert df.schema["component"] == pl.Int64
    assert df["component"].to_list() == [0, 0, 0]


def test_edges_frame(chain_graph):
    df = edges_frame(chain_graph)
    assert df.rows() == [("@a", "@b"), ("@b", "@c")]


def test_edges_frame_of_empty_graph(fresh_graph):
    df = edges_frame(fresh_graph)
    assert df.height == 0
    assert df.schema == {"source": pl.Utf8, "target": pl.Utf8}


def test_components_frame(chain_graph):
    df = components_frame(KosarajuSCC().compute_result(chain_graph))
    assert df["size"].to_list() == [1, 1, 1]
    assert df["members"].to_list() == ["@a", "@b", "@c"]


# =============================================================================
# EXPORT
# =============================================================================

@pytest.mark.parametrize("file_format", ["parquet", "csv"])
def test_export_graph_writes_files(tmp_path, triangle_graph, file_format):
    """
    Validate export_graph output.

    Verifies:
    - One file per frame, named <frame>.<format>
    - Edge file reads back with the same rows
    """
    result = KosarajuSCC().compute_result(triangle_graph)
    written = export_graph(triangle_graph, tmp_path / "out", format=file_format, result=result)

    assert set(written) == {"nodes", "edges", "components"}
    for path in written.values():
        assert path.exists()
        assert path.suffix == f".{file_format}"

    reader = pl.read_parquet if file_format == "parquet" else pl.read_csv
    assert reader(written["edges"]).rows() == [("@a", "@b"), ("@b", "@c"), ("@c", "@a")]


def test_export_without_result_skips_components(tmp_path, chain_graph):
    written = export_graph(chain_graph, tmp_path, format="csv")
    assert set(written) == {"nodes", "edges"}


def test_export_unknown_format(tmp_path, chain_graph):
    with pytest.raises(ValueError, match="Unknown format"):
        export_graph(chain_graph, tmp_path, format="xlsx")


# =============================================================================
# LOADER
# =============================================================================

def test_load_graph_round_trip(tmp_path, triangle_graph):
    written = export_graph(triangle_graph, tmp_path, format="parquet")
    graph = PolarsLoader().load_graph(written["edges"])
    assert graph == triangle_graph


def test_build_graph_auto_creates_endpoints():
    edges = pl.DataFrame({"source": ["@x", "@y"], "target": ["@y", "@z"]})
    graph = PolarsLoader().build_graph(edges, nodes=["@lonely"])

    assert graph.nodes() == ["@lonely", "@x", "@y", "@z"]
    assert graph.edge_count == 2


def test_build_graph_rejects_blank_handles():
    edges = pl.DataFrame({"source": ["@x", None], "target": ["@y", "@z"]})
    with pytest.raises(DataIntegrityError):
        PolarsLoader().build_graph(edges)

    edges = pl.DataFrame({"source": ["@x"], "target": ["   "]})
    with pytest.raises(DataIntegrityError):
        PolarsLoader().build_graph(edges)


def test_load_edges_missing_column(tmp_path):
    path = tmp_path / "edges.csv"
    pl.DataFrame({"source": ["@a"], "dest": ["@b"]}).write_csv(path)

    with pytest.raises(SchemaValidationError) as exc_info:
        PolarsLoader().load_edges(path)
    assert exc_info.value.missing_columns == ["target"]


def test_load_edges_is_lazy(tmp_path):
    path = tmp_path / "edges.csv"
    pl.DataFrame({"source": ["@a"], "target": ["@b"]}).write_csv(path)

    lf = PolarsLoader().load_edges(path)
    assert isinstance(lf, pl.LazyFrame)


def test_load_edges_unknown_suffix(tmp_path):
    with pytest.raises(ValueError):
        PolarsLoader().load_edges(tmp_path / "edges.json")
