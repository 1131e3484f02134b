"""
logdna-cloudwatch - CloudWatch Logs → LogDNA forwarder

Decodes CloudWatch Logs subscription events, normalizes every log event
into a LogDNA line and ships the batch to the LogDNA ingestion API with
retry and backoff.

Lambda handler: logdna_cloudwatch.handler.handler
"""

__version__ = "0.1.0"
