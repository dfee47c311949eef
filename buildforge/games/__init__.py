"""
Games module - Built-in feature libraries.

Each game has its own subpackage with a hand-authored library.
BUILTIN_LIBRARIES maps a library id to its factory.
"""

from .pathfinder import create_pathfinder_library

BUILTIN_LIBRARIES = {
    "pathfinder": create_pathfinder_library,
}
