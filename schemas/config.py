"""Project configuration schema (``.arc/config.yaml``)."""

from __future__ import annotations

from pydantic import BaseModel, Field

DEFAULT_RUBY_VERSION = "3.3.6"


class RubyConfig(BaseModel):
    version: str = DEFAULT_RUBY_VERSION


class ArcConfig(BaseModel):
    ruby: RubyConfig = Field(default_factory=RubyConfig)

    def to_json(self) -> str:
        return self.model_dump_json()

    @classmethod
    def from_json(cls, data: str) -> "ArcConfig":
        return cls.model_validate_json(data)
