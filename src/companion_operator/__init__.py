"""Operator that keeps a VerticalPodAutoscaler next to every Deployment and Job."""

__version__ = "0.1.0"
