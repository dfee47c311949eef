"""
Buildforge - Character Build Resolution Engine

A deterministic, rules-driven engine for resolving tabletop character builds.
The engine loads feature libraries (tagged rule fragments) and provides:
- Feature lookup and tag queries
- Dice expression parsing and rolling
- Recursive feature resolution with player choices
- Build sessions over an HTTP API
"""

__version__ = "0.1.0"
