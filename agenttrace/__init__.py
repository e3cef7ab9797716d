"""
AgentTrace — structured execution traces for agent sessions.
"""

__version__ = "1.0.0"
