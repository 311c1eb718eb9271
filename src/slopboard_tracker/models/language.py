"""Language identity attached to every session."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

UNKNOWN_LANGUAGE_ID = 0
UNKNOWN_LANGUAGE_COLOR = "#cccccc"


class Language(BaseModel):
    """A language as known to the collector (id, display name, color)."""

    model_config = ConfigDict(frozen=True)

    id: int = Field(..., description="Collector language id (0 = unknown)")
    name: str = Field(..., description="Display name")
    color: str = Field(UNKNOWN_LANGUAGE_COLOR, description="Hex color for charts")

    @property
    def is_unknown(self) -> bool:
        return self.id == UNKNOWN_LANGUAGE_ID


def unknown_language(hint: Optional[str] = None) -> Language:
    """Sentinel for targets no table entry matches; keeps the editor's hint as name."""
    return Language(
        id=UNKNOWN_LANGUAGE_ID,
        name=hint or "Unknown",
        color=UNKNOWN_LANGUAGE_COLOR,
    )
