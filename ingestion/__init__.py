"""
Hourly GitHub Archive import pipeline.

Modules:
    hours: Hour range expansion and RFC 3339 parsing
    provisioning: Destination table provisioning
    runner: Orchestrator that drives the pipeline hour by hour
    cli: Command line entry point

Subpackages:
    extractors: Archive download, gzip inflation and record decoding
    transformers: Record to event mapping and per-hour ordering
    loaders: Delivery of hour batches into Sky

Architecture:
    For each hour in the requested range:

    1. Fetch - Stream the hour's gzip archive over HTTP
    2. Decode - Inflate and parse one JSON record at a time
    3. Map - Keep actor, timestamp and the fixed attribute set
    4. Order - Sort the hour's events by timestamp
    5. Deliver - Stream the batch into the Sky table

    Malformed records are dropped, unreadable hours are skipped, and the
    run continues to the end of the range.

Usage:
    from ingestion.hours import parse_range
    from ingestion.runner import ImportRunner

Example:
    hours = parse_range(["2013-01-01T00:00:00Z", "2013-01-01T23:00:00Z"])
    runner = ImportRunner(extractor, loader, config)
    result = await runner.run(hours)

    print(f"Loaded {result['events_loaded']} events")
"""

__all__ = [
    "HourRange",
    "parse_range",
    "ArchiveExtractor",
    "RecordDecoder",
    "EventMapper",
    "SkyLoader",
    "ImportRunner",
    "provision_table",
]
