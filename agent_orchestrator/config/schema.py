"""Configuration schema for agent-orchestrator."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel
from pydantic_settings import BaseSettings


class CamelModel(BaseModel):
    """Section model read and written with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class VariantArgs(CamelModel):
    """Extra CLI arguments per spawn variant."""

    fresh: str = ""
    resume: str = "-r"
    continue_: str = Field(default="-c", alias="continue")


class AgentConfig(CamelModel):
    """The CLI agent that sessions run."""

    name: str = "Claude"
    executable: str = "claude"
    args: VariantArgs = Field(default_factory=VariantArgs)


class StatusBarConfig(CamelModel):
    """Floating session summary line."""

    visible: bool = True
    emphasis: bool = True
    min_width: int = 10
    padding: int = 4
    max_width_ratio: float = 0.8
    bottom_offset: int = 3
    zindex: int = 45
    truncation_marker: str = "..."
    active_indicator: str = "●"
    # Columns reserved for the indicator; None measures the glyph.
    active_indicator_width: int | None = 2
    cap_left: str = ""
    cap_right: str = ""


class EditorConfig(CamelModel):
    """Floating prompt editor."""

    width_ratio: float = 0.6
    height_ratio: float = 0.4
    border: str = "rounded"
    title: str = " Prompt Editor "
    bottom_margin: int = 2
    status_bar_margin: int = 5
    zindex: int = 50
    filetype: str = "markdown"


class TerminalConfig(CamelModel):
    """PTY geometry for spawned sessions."""

    cols: int = 120
    rows: int = 36
    history: int = 5000


class ColorDef(CamelModel):
    """One named session color."""

    name: str
    fg: str


def _default_palette() -> list[ColorDef]:
    return [
        ColorDef(name="Red", fg="#FF6B6B"),
        ColorDef(name="Blue", fg="#6B9FFF"),
        ColorDef(name="Green", fg="#6BFF9F"),
        ColorDef(name="Yellow", fg="#FFD96B"),
        ColorDef(name="Magenta", fg="#FF6BD9"),
        ColorDef(name="Cyan", fg="#6BD9FF"),
        ColorDef(name="Orange", fg="#FF9F6B"),
        ColorDef(name="Purple", fg="#9F6BFF"),
    ]


class Config(BaseSettings):
    """Root configuration for agent-orchestrator."""

    agent: AgentConfig = Field(default_factory=AgentConfig)
    # Root fields carry no validation alias so env lookups keep the prefix.
    status_bar: StatusBarConfig = Field(default_factory=StatusBarConfig, serialization_alias="statusBar")
    editor: EditorConfig = Field(default_factory=EditorConfig)
    terminal: TerminalConfig = Field(default_factory=TerminalConfig)
    palette: list[ColorDef] = Field(default_factory=_default_palette)

    @field_validator("palette")
    @classmethod
    def _eight_colors(cls, value: list[ColorDef]) -> list[ColorDef]:
        if len(value) != 8:
            raise ValueError(f"palette needs exactly 8 colors, got {len(value)}")
        return value

    model_config = ConfigDict(
        env_prefix="AGENT_ORCHESTRATOR_",
        env_nested_delimiter="__",
        extra="ignore",
    )
