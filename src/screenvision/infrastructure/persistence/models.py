"""SQLModel table definitions."""

from datetime import datetime, timezone

from sqlmodel import Field, SQLModel


class PromptTemplateModel(SQLModel, table=True):
    """Custom prompt template table."""

    __tablename__ = "prompt_templates"

    id: str = Field(primary_key=True)
    name: str
    icon: str = ""
    description: str = ""
    analyze_template: str
    chat_template: str
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc), index=True
    )
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
