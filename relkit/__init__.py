"""Release pipeline simulator and deploy-window PR resolver."""

__version__ = "0.1.0"
