"""Identifiers for rows, executions and published events."""

from cuid2 import cuid_wrapper

_next_cuid = cuid_wrapper()


def generate_cuid() -> str:
    """Return a new CUID2 string.

    Row primary keys default to this; the engine also uses it for
    execution_id (shared by every log row of one run) and event ids.
    """
    return str(_next_cuid())
