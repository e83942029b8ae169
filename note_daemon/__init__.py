# Note Daemon
#
# Modular package structure:
# - config.py: Settings, log levels and the daily note template
# - logging.py: structlog configuration (stderr only)
# - utils.py: Regex patterns, date helpers, path validation and exceptions
# - models.py: Pydantic models for notes, tasks, log entries and query results
# - parser.py: Markdown parser for the Tasks and Log sections
# - index.py: In-memory index store with reverse indices
# - vault.py: Filesystem vault (read, atomic write, enumerate)
# - manager.py: Full and single-note reindexing
# - domain.py: Query and daily note operations
# - rpc.py: JSON-RPC envelopes, parameters and dispatch
# - server.py: Line-delimited stdio loop
# - main.py: Command line entry point
