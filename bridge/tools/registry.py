# ==============================
# Tool Registry
# ==============================
"""
Operation registry.

Design:
- Registry stores name -> ToolDescriptor (metadata + execution strategy)
- Toolsets register their descriptors during boot (see utils/toolset_loader.py)
- freeze() makes the registry read-only; it is shared by every invocation
- Resolution is by normalized string name
- Required-argument enforcement is the dispatcher's job, not the registry's
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

from bridge.contracts.tool_schema import ToolDescriptor


class ToolRegistry:
    def __init__(self, descriptors: Optional[Iterable[ToolDescriptor]] = None) -> None:
        self._tools: Dict[str, ToolDescriptor] = {}
        self._frozen = False
        for descriptor in descriptors or []:
            self.register(descriptor)

    def register(self, descriptor: ToolDescriptor, *, overwrite: bool = False) -> None:
        if self._frozen:
            raise RuntimeError("Tool registry is frozen; register tools before startup completes.")
        norm = _norm(descriptor.name)
        if not overwrite and norm in self._tools:
            raise ValueError(f"Tool already registered: {descriptor.name}")
        self._tools[norm] = descriptor

    def freeze(self) -> "ToolRegistry":
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    def lookup(self, name: str) -> Optional[ToolDescriptor]:
        return self._tools.get(_norm(name))

    def has(self, name: str) -> bool:
        return _norm(name) in self._tools

    def list_all(self) -> List[ToolDescriptor]:
        return list(self._tools.values())

    def tool_definitions(self) -> List[Dict[str, Any]]:
        return [d.to_tool_definition() for d in self._tools.values()]

    def __len__(self) -> int:
        return len(self._tools)


def _norm(name: str) -> str:
    return name.strip().lower().replace(" ", "_")
