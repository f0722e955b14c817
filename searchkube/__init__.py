"""Kubernetes manifest builders and helpers for OpenSearch clusters."""

__version__ = "0.1.0"

__all__ = ["configuration", "helpers", "images", "model", "services", "workloads"]