"""
FOLLOWGRAPH MAIN - Entry Point and CLI

Commands:
    scc      - Compute strongly connected components of a graph file
    stats    - Print a health report (sizes, density, components)
    check    - Parse a graph file and list every warning
    export   - Export nodes/edges/components to parquet or csv
    import   - Build a graph file from a tabular edge list

Usage:
    # Components, one per line, plus the handle -> component mapping
    python main.py scc network.txt --mapping

    # Health report
    python main.py stats network.txt

    # Parse warnings only (exit status 1 on a malformed file)
    python main.py check network.txt

    # Tabular export
    python main.py export network.txt --format csv --output ./export

    # Edge list (columns: source, target) to the text format
    python main.py import edges.parquet network.txt

Global options:
    --config PATH       Use another followgraph.toml
    --log-level LEVEL   DEBUG, INFO, WARNING, ...
"""
import sys
from pathlib import Path
from typing import List, Optional

# Add followgraph to path for imports
sys.path.insert(0, str(Path(__file__).parent))

import msgspec

from core.graph_db import GraphError


def _load_service(path: str):
    from domain.graph_service import GraphService

    service = GraphService()
    result = service.load_from_file(Path(path))
    return service, result


def cmd_scc(args):
    """Handle scc command - print components in discovery order."""
    service, _ = _load_service(args.file)
    result = service.compute_strongly_connected_components()

    print(f"{result.component_count} strongly connected component(s) "
          f"over {service.user_count()} user(s)")
    for index, component in enumerate(result.components):
        print(f"  [{index}] {', '.join(component)}")

    if args.mapping:
        print()
        for handle in service.users():
            print(f"  {handle} -> {result.mapping[handle]}")


def cmd_stats(args):
    """Handle stats command - print the graph health report."""
    from core.analytics import get_graph_health_report

    service, _ = _load_service(args.file)
    result = service.compute_strongly_connected_components()
    report = get_graph_health_report(service.get_graph_snapshot(), result)

    print(f"Users:                 {report.total_nodes}")
    print(f"Relations:             {report.total_edges}")
    print(f"Density:               {report.density:.4f}")
    print(f"Strong components:     {report.component_count}")
    print(f"  largest:             {report.largest_component_size}")
    print(f"  singletons:          {report.singleton_components}")
    print(f"Weak components:       {report.weak_component_count}")
    print(f"Isolated users:        {report.isolated_nodes}")
    print(f"Acyclic:               {'yes' if report.is_dag else 'no'}")


def cmd_check(args):
    """Handle check command - report parse warnings."""
    _, result = _load_service(args.file)

    for warning in result.warnings:
        print(f"warning: {warning}")
    print(f"{result.user_count} user(s), {result.relation_count} relation(s), "
          f"{len(result.warnings)} warning(s)")


def cmd_export(args):
    """Handle export command - write Polars frames to disk."""
    from infrastructure.config import get_config
    from infrastructure.data_loader import export_graph

    settings = get_config().export
    output_dir = Path(args.output or settings.output_dir)
    file_format = args.format or settings.format

    service, _ = _load_service(args.file)
    result = service.compute_strongly_connected_components()

    print(f"Exporting graph to {output_dir}...")
    written = export_graph(service.get_graph_snapshot(), output_dir, format=file_format, result=result)
    print(f"Exported {service.user_count()} users, {service.relation_count()} relations")
    for name, path in written.items():
        print(f"  {name.capitalize()}: {path}")


def cmd_import(args):
    """Handle import command - edge list to the text format."""
    from infrastructure.data_loader import PolarsLoader
    from infrastructure.graph_file import GraphFileWriter

    print(f"Importing edge list from {args.edges_file}...")
    graph = PolarsLoader().load_graph(args.edges_file, format=args.format)
    GraphFileWriter().write(Path(args.output), graph)
    print(f"Imported {graph.node_count} users, {graph.edge_count} relations -> {args.output}")


def build_parser():
    import argparse

    parser = argparse.ArgumentParser(
        prog="followgraph",
        description="FollowGraph - strongly connected components of follows networks",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--config", type=str, help="Path to a followgraph.toml")
    parser.add_argument("--log-level", type=str, help="Logging level (default from config)")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # scc command
    scc_parser = subparsers.add_parser("scc", help="Compute strongly connected components")
    scc_parser.add_argument("file", help="Graph file (users/relations format)")
    scc_parser.add_argument("--mapping", action="store_true", help="Also print handle -> component")
    scc_parser.set_defaults(func=cmd_scc)

    # stats command
    stats_parser = subparsers.add_parser("stats", help="Print graph health report")
    stats_parser.add_argument("file", help="Graph file (users/relations format)")
    stats_parser.set_defaults(func=cmd_stats)

    # check command
    check_parser = subparsers.add_parser("check", help="Parse a file and list warnings")
    check_parser.add_argument("file", help="Graph file (users/relations format)")
    check_parser.set_defaults(func=cmd_check)

    # export command
    export_parser = subparsers.add_parser("export", help="Export graph to tabular files")
    export_parser.add_argument("file", help="Graph file (users/relations format)")
    export_parser.add_argument("--output", "-o", help="Output directory (default from config)")
    export_parser.add_argument("--format", choices=["parquet", "csv"], help="File format (default from config)")
    export_parser.set_defaults(func=cmd_export)

    # import command
    import_parser = subparsers.add_parser("import", help="Build a graph file from an edge list")
    import_parser.add_argument("edges_file", help="Edge list with source/target columns")
    import_parser.add_argument("output", help="Graph file to write")
    import_parser.add_argument("--format", choices=["parquet", "csv"], help="Input format (default: suffix)")
    import_parser.set_defaults(func=cmd_import)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point with subcommands."""
    from infrastructure.config import load_config, set_config
    from infrastructure.logger import configure_logging

    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 2

    try:
        if args.config:
            set_config(load_config(Path(args.config)))
        configure_logging(args.log_level)
        args.func(args)
    except (GraphError, OSError, ValueError, msgspec.ValidationError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
