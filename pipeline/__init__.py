"""
Contact ETL pipeline components.

This package contains all components for the Extract-Transform-Load pipeline:

Modules:
    base: Stage interfaces (SourceClient, RecordTransformer, RecordSink, ErrorLogSink)
    runner: Orchestrator that sequences the stages for one request
    error_log: Error log sinks (database, in-memory)
    run_store: Pipeline run tracking
    scheduler: APScheduler integration for periodic runs
    factory: Production wiring from settings

Subpackages:
    extractors: HTTP source client
    transformers: Raw record to canonical contact mapping
    loaders: Idempotent, per-record contact upserts

Architecture:
    1. Extract - Fetch a JSON array from the upstream, retrying transient failures
    2. Transform - Validate and map each record independently
    3. Load - Upsert each record by email, reporting per-record results

    Transform and Load degrade to partial success; only Extract can abort a run.

Usage:
    from pipeline.factory import build_runner

    runner = build_runner(session_factory)
    outcome = await runner.run("https://crm.example.com/api/contacts")
    print(f"Loaded {outcome.loaded_count} contacts")
"""

__all__ = [
    "base",
    "runner",
    "error_log",
    "run_store",
    "scheduler",
    "factory",
]
