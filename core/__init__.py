"""
Core Package

Contains the provider-agnostic core logic including:
- SourceAdapter: Abstract base class defining the contract for all price sources
- SourceManager: Registry mapping source names to adapter instances
- Aggregation, ratio and indicator stages operating on normalized series
- PairPipeline / PipelineOrchestrator: fetch, derive and recompute per pair
- Schemas: Pydantic models for normalized data structures (Bar, Quote, RatioBar, etc.)

This layer never sees provider payloads, so any asset can be bound to any source.
"""
