"""
Core forwarding components.

This package contains the delivery pipeline:
- Event decoding
- Normalization into LogDNA lines
- Secret resolution for the ingestion key
- Async delivery with retry classification
- Metrics collection
"""
