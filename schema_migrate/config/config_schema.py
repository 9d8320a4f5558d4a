from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from schema_migrate.core.ir import Dialect

OutputFormat = Literal["text", "json", "yaml", "sql"]


class CLIConfig(BaseModel):
    """Contents of ``schema-migrate.yml``.

    ``command: diff`` compares ``source`` against ``target`` (optionally
    through models modules); ``command: transform`` converts ``input`` from
    one dialect to another.
    """

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    command: Literal["diff", "transform"] = Field(default="diff")
    adapter: str = Field(default="ddl")
    dialect: str = Field(default="postgres")

    source: Optional[str] = None
    target: Optional[str] = None
    source_module: Optional[str] = None
    target_module: Optional[str] = None

    input: Optional[str] = None
    from_dialect: Optional[str] = Field(default=None, alias="from")
    to_dialect: Optional[str] = Field(default=None, alias="to")

    output: OutputFormat = Field(default="text")
    out_file: Optional[str] = None
    fail_on_changes: bool = Field(default=False)

    @field_validator("dialect", "from_dialect", "to_dialect")
    @classmethod
    def _known_dialect(cls, v: Optional[str]) -> Optional[str]:
        if v is not None:
            Dialect.parse(v)
        return v

    @model_validator(mode="after")
    def _required_for_command(self) -> "CLIConfig":
        if self.command == "diff":
            missing = [k for k in ("source", "target") if getattr(self, k) is None]
        else:
            missing = [k for k, attr in (("input", "input"), ("from", "from_dialect"), ("to", "to_dialect")) if getattr(self, attr) is None]
        if missing:
            raise ValueError(f"'{self.command}' requires: {', '.join(missing)}")
        return self
