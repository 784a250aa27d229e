"""
FOLLOWGRAPH DATA LOADER - Tabular Export and Edge-List Import

The text format (infrastructure/graph_file.py) is the file users edit.
This module is the tabular side: Polars frames for analysis, and
parquet/csv files for moving a follows graph into other tools.

Architecture:
- nodes_frame / edges_frame: FollowGraph -> pl.DataFrame
- export_graph: write both frames (parquet or csv)
- PolarsLoader: lazy scan of an edge list, schema validation, and
  graph construction with endpoint auto-creation

Performance Strategy:
- scan_csv()/scan_parquet() for lazy reads, collect() once
- Column extraction to Python lists before touching the graph
"""
import logging
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import polars as pl

from core.graph_db import FollowGraph, GraphError
from core.schemas import SccResult


logger = logging.getLogger("followgraph.data_loader")


# =============================================================================
# SCHEMA DEFINITIONS
# =============================================================================

EDGE_SCHEMA = {
    "source": pl.Utf8,
    "target": pl.Utf8,
}

NODE_SCHEMA = {
    "handle": pl.Utf8,
    "following": pl.Int64,
    "followers": pl.Int64,
}

SUPPORTED_FORMATS = ("parquet", "csv")


# =============================================================================
# VALIDATION ERRORS
# =============================================================================

class DataLoadError(GraphError):
    """Base exception for tabular import/export errors."""
    pass


class SchemaValidationError(DataLoadError):
    """Raised when data doesn't match expected schema."""
    def __init__(self, missing_columns: List[str], invalid_types: Dict[str, str] = None):
        self.missing_columns = missing_columns
        self.invalid_types = invalid_types or {}
        msg = f"Schema validation failed. Missing columns: {missing_columns}"
        if invalid_types:
            msg += f", Invalid types: {invalid_types}"
        super().__init__(msg)


class DataIntegrityError(DataLoadError):
    """Raised when rows carry null or empty handles."""
    pass


# =============================================================================
# GRAPH -> FRAMES
# =============================================================================

def nodes_frame(graph: FollowGraph, result: Optional[SccResult] = None) -> pl.DataFrame:
    """
    One row per handle, in node order.

    Columns: handle, following, followers, and component (Int64, null for
    handles the result does not cover) when an SccResult is given.
    """
    handles = graph.nodes()
    followers: Dict[str, int] = {handle: 0 for handle in handles}
    for relation in graph.edges():
        followers[relation.target] += 1

    data = {
        "handle": handles,
        "following": [graph.out_degree(h) for h in handles],
        "followers": [followers[h] for h in handles],
    }
    schema = dict(NODE_SCHEMA)
    if result is not None:
        data["component"] = [result.mapping.get(h) for h in handles]
        schema["component"] = pl.Int64
    return pl.DataFrame(data, schema=schema)


def edges_frame(graph: FollowGraph) -> pl.DataFrame:
    """One row per follows edge, grouped by source in node order."""
    edges = graph.edges()
    return pl.DataFrame(
        {
            "source": [e.source for e in edges],
            "target": [e.target for e in edges],
        },
        schema=EDGE_SCHEMA,
    )


def components_frame(result: SccResult) -> pl.DataFrame:
    """One row per component: index, size, and members joined by spaces."""
    return pl.DataFrame(
        {
            "component": list(range(result.component_count)),
            "size": [len(c) for c in result.components],
            "members": [" ".join(c) for c in result.components],
        },
        schema={"component": pl.Int64, "size": pl.Int64, "members": pl.Utf8},
    )


def export_graph(
    graph: FollowGraph,
    output_dir: str | Path,
    format: str = "parquet",
    result: Optional[SccResult] = None,
) -> Dict[str, Path]:
    """
    Write nodes (and components, when given) plus edges to output_dir.

    Returns:
        Mapping of frame name -> written path
    """
    if format not in SUPPORTED_FORMATS:
        raise ValueError(f"Unknown format: {format}. Use: {list(SUPPORTED_FORMATS)}")

    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    frames = {
        "nodes": nodes_frame(graph, result),
        "edges": edges_frame(graph),
    }
    if result is not None:
        frames["components"] = components_frame(result)

    written: Dict[str, Path] = {}
    for name, frame in frames.items():
        path = output_dir / f"{name}.{format}"
        if format == "parquet":
            frame.write_parquet(path)
        else:
            frame.write_csv(path)
        written[name] = path

    logger.info("exported %d nodes, %d edges to %s (%s)", graph.node_count, graph.edge_count, output_dir, format)
    return written


# =============================================================================
# POLARS LOADER (Edge-List Import)
# =============================================================================

class PolarsLoader:
    """
    Lazy edge-list loader.

    Usage:
        loader = PolarsLoader()
        lf = loader.load_edges("edges.parquet")   # nothing read yet
        graph = loader.build_graph(lf)
    """

    def __init__(self, validate: bool = True):
        self.validate = validate

    def load_edges(self, path: str | Path, format: Optional[str] = None) -> pl.LazyFrame:
        """
        Lazily scan an edges file with source/target columns.

        The format is taken from the suffix when not given.
        """
        path = Path(path)
        file_format = format or path.suffix.lstrip(".").lower()
        if file_format == "parquet":
            lf = pl.scan_parquet(path)
        elif file_format == "csv":
            lf = pl.scan_csv(path, infer_schema_length=1000)
        else:
            raise ValueError(f"Unknown format: {file_format}. Use: {list(SUPPORTED_FORMATS)}")

        if self.validate:
            self._validate_edge_schema(lf)
        return lf

    def build_graph(self, edges: pl.LazyFrame | pl.DataFrame, nodes: Optional[List[str]] = None) -> FollowGraph:
        """
        Build a FollowGraph from an edge frame.

        Explicit nodes come first, then endpoints in order of first
        appearance. Endpoints are auto-created here (loader policy);
        the store itself would reject them.

        Raises:
            DataIntegrityError: If any source/target is null or blank
        """
        df = edges.collect() if isinstance(edges, pl.LazyFrame) else edges
        sources, targets = self._columns(df)

        graph = FollowGraph()
        if nodes:
            graph.ensure_nodes_present(nodes)
        for source, target in zip(sources, targets):
            graph.ensure_nodes_present((source, target))
            graph.add_edge(source, target)

        logger.info("built graph from edge list: %d nodes, %d edges", graph.node_count, graph.edge_count)
        return graph

    def load_graph(self, path: str | Path, format: Optional[str] = None) -> FollowGraph:
        return self.build_graph(self.load_edges(path, format=format))

    def _columns(self, df: pl.DataFrame) -> Tuple[List[str], List[str]]:
        null_rows = df.filter(
            pl.col("source").is_null()
            | pl.col("target").is_null()
            | (pl.col("source").str.strip_chars() == "")
            | (pl.col("target").str.strip_chars() == "")
        )
        if null_rows.height:
            raise DataIntegrityError(f"{null_rows.height} edge rows have a null or empty handle")
        return df["source"].to_list(), df["target"].to_list()

    def _validate_edge_schema(self, lf: pl.LazyFrame) -> None:
        """Check required columns and their types without collecting data."""
        schema = lf.collect_schema()
        missing = []
        invalid_types = {}

        for col_name, expected_type in EDGE_SCHEMA.items():
            if col_name not in schema:
                missing.append(col_name)
            elif schema[col_name] != expected_type:
                invalid_types[col_name] = f"Expected {expected_type}, got {schema[col_name]}"

        if missing or invalid_types:
            raise SchemaValidationError(missing_columns=missing, invalid_types=invalid_types)
