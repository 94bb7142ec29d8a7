"""Health assessment, JSON merge patches, managed fields and manifest helpers for Kubernetes resources."""

__version__ = "0.1.0"