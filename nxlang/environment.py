from typing import Any, Dict, Optional

from nxlang.errors import RuntimeFault


class Environment:
    """Represents a scope environment mapping identifiers to values."""
    def __init__(self, parent: Optional['Environment'] = None):
        self.parent = parent
        self.values: Dict[str, Any] = {}

    def lookup(self, name: str) -> Optional['Environment']:
        if name in self.values:
            return self
        if self.parent:
            return self.parent.lookup(name)
        return None

    def get(self, name: str) -> Any:
        env = self.lookup(name)
        if env is None:
            raise RuntimeFault(f"undefined variable '{name}'")
        return env.values[name]

    def set(self, name: str, value: Any):
        # Rebind where the name already lives, otherwise bind it here.
        env = self.lookup(name)
        if env is None:
            env = self
        env.values[name] = value

    def declare(self, name: str, value: Any):
        self.values[name] = value
