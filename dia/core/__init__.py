"""
Core runtime for DIA: configuration, logging, event loop, listening
state machine and the session orchestrator.
"""
