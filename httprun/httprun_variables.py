import logging
import re
import time
import uuid
from typing import Dict, Mapping, Optional

logger = logging.getLogger(__name__)

VARIABLE_RE = re.compile(r"\{\{([^}]+)\}\}")


def _uuid() -> str:
    return str(uuid.uuid4())


def _timestamp() -> str:
    return str(int(time.time()))


def _random_int() -> str:
    # Sub-second clock bits, not a uniform distribution
    return str(time.time_ns() % 1000)


DYNAMIC_VARIABLES = {
    "$uuid": _uuid,
    "$timestamp": _timestamp,
    "$randomInt": _random_int,
}


class VariableStore:
    """Resolves `{{name}}` placeholders against three tiers of string values.

    Precedence is in-place > global > environment. Unknown names are left
    untouched, so substitution never fails.
    """

    def __init__(self, env_vars: Optional[Mapping[str, str]] = None):
        self.env_vars: Dict[str, str] = dict(env_vars or {})
        self.global_vars: Dict[str, str] = {}
        self.in_place_vars: Dict[str, str] = {}

    def merge_globals(self, globals_: Mapping[str, str]):
        self.global_vars.update(globals_)

    def set_in_place(self, name: str, value: str):
        self.in_place_vars[name] = value

    def lookup(self, name: str) -> Optional[str]:
        for tier in (self.in_place_vars, self.global_vars, self.env_vars):
            if name in tier:
                return tier[name]
        return None

    def substitute(self, text: str) -> str:
        def replace(m: re.Match) -> str:
            name = m.group(1).strip()
            generate = DYNAMIC_VARIABLES.get(name)
            if generate is not None:
                return generate()
            value = self.lookup(name)
            if value is None:
                logger.debug("unresolved placeholder %s", m.group(0))
                return m.group(0)
            return value

        return VARIABLE_RE.sub(replace, text)
