"""
Identity Repository

Canonical identity records with lenient payload reconciliation, sharded
salted addressing, artifact ingestion and credential reissue.
"""

__version__ = "0.1.0"
