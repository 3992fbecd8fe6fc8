"""Theme data models"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

MAIN_ROLE = "main"


class ThemeRef(BaseModel):
    """One theme version in the remote store"""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    name: str
    role: str = ""
    created_at: str | None = Field(default=None, alias="createdAt")

    @property
    def is_main(self) -> bool:
        return self.role.lower() == MAIN_ROLE

    @property
    def type(self) -> str:
        """Picker side: the live theme is the comparison source"""
        return "source" if self.is_main else "target"


class ThemeListItem(BaseModel):
    """Theme as shown in the theme pickers"""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    role: str
    created_at: str | None = Field(default=None, alias="createdAt")
    type: str

    @classmethod
    def from_ref(cls, theme: ThemeRef) -> "ThemeListItem":
        return cls(
            id=theme.id,
            name=theme.name,
            role=theme.role,
            created_at=theme.created_at,
            type=theme.type,
        )
