"""overlaytest - check the Kubernetes overlay network between all nodes."""

__version__ = "1.0.6"
