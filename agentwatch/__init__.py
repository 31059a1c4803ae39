"""agentwatch - file-backed context management for autonomous monitoring agents.

Each agent is a directory holding a natural-language instruction, a state
record, and an append-only history of run records with Markdown reports.
"""

__version__ = "0.1.0"
