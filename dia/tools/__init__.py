"""
External actions for DIA (opening sites and search results).
"""
from dia.tools.action_sink import ActionSink, WebBrowserActionSink, resolve_open_target

__all__ = ["ActionSink", "WebBrowserActionSink", "resolve_open_target"]
