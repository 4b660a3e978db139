"""Query layer for DynamoDB upload manifests and PostgreSQL dataset records."""

__version__ = "0.1.0"