"""
Core Package

Contains the provider-agnostic aggregation logic including:
- SourceAdapter: Abstract base class (and attempt chain) all sources implement
- SourceManager: Registry of sources and concurrent fetch orchestrator
- merge_engine / diff_engine: One record per token, new/changed detection
- Schemas: Pydantic models for normalized token records and query responses
"""
