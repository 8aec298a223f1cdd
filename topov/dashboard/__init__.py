from .app import TopovApp, cmd_dashboard

__all__ = ["TopovApp", "cmd_dashboard"]
