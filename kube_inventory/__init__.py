"""Point-in-time inventory of every resource a Kubernetes cluster serves."""

__version__ = "0.1.0"
