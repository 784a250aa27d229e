"""
FOLLOWGRAPH INFRASTRUCTURE - System-Level Modules

This package contains infrastructure components:
- config: TOML configuration decoded into msgspec Structs
- event_bus: publisher/subscriber channel for graph events
- logger: logging setup and the mutation log
- change_tracker: unsaved-changes flag with listeners
- graph_file: two-section text format parser and writer
- data_loader: Polars-based tabular export and edge-list import
"""
