"""
Expansion of %NAME% placeholders in monitor paths.

A token is replaced by the value of the environment variable it names when
that variable is set at call time. Unknown tokens are left verbatim.
"""

import os
import re
from typing import Mapping, Optional

_PLACEHOLDER = re.compile(r"%([^%]+)%")


def resolve(path: str, environ: Optional[Mapping[str, str]] = None) -> str:
    """Return `path` with every %NAME% token whose variable is defined replaced by its value."""
    env = os.environ if environ is None else environ

    def _substitute(match: re.Match) -> str:
        value = env.get(match.group(1))
        return match.group(0) if value is None else value

    return _PLACEHOLDER.sub(_substitute, path)
