"""
Influx Forwarder - batching metrics output for InfluxDB-style endpoints

Turns a stream of structured event records into time-series points:
- Template-driven point building (measurement, database, data points)
- Field/tag classification with type coercion
- Per-database buffering with size and idle-time flushes
- Line protocol and legacy JSON series encoding
- HTTP delivery with bounded retry and failure classification
"""

__version__ = "0.1.0"
