"""Pydantic payload models for signal producers.

Replay reads payloads leniently as plain mappings; these models only give
producers (project init, execution recorder, manifest and runtime
collaborators) a stable shape to write. Unknown fields are allowed and passed
through untouched.
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class _Payload(BaseModel):
    model_config = ConfigDict(extra="allow")

    def to_payload(self) -> dict:
        return self.model_dump(mode="json")


class InitPayload(_Payload):
    path: str
    version: str
    ruby_version: Optional[str] = None


class StartPayload(_Payload):
    """Payload of ``exec_start`` / ``install_start`` / ``run_start``."""

    command: str
    args: List[str] = Field(default_factory=list)
    cwd: str = ""


class EndPayload(_Payload):
    """Payload of ``exec_end`` / ``install_end`` / ``run_end``."""

    ref_id: str
    exit_code: Optional[int] = None
    success: bool
    duration_ms: Optional[int] = Field(default=None, ge=0)


class AddPayload(_Payload):
    gem: str
    version: Optional[str] = None


class RemovePayload(_Payload):
    gem: str
    # Removing keeps the previous constraint so an undo can restore it.
    version: Optional[str] = None


class UndoPayload(_Payload):
    target_id: str
    target_type: str
    gem: str


class BootstrapPayload(_Payload):
    ruby_version: str
    cache_hit: bool = False
    dest: Optional[str] = None


class ShellEnterPayload(_Payload):
    shell: str


class ShellExitPayload(_Payload):
    exit_code: int


__all__ = [
    "InitPayload",
    "StartPayload",
    "EndPayload",
    "AddPayload",
    "RemovePayload",
    "UndoPayload",
    "BootstrapPayload",
    "ShellEnterPayload",
    "ShellExitPayload",
]
