"""Prompt template catalog: built-ins plus user-defined templates."""

import dataclasses
import logging
from datetime import datetime, timezone
from uuid import uuid4

from screenvision.domain.entities import PromptTemplate
from screenvision.domain.exceptions import (
    TemplateNotEditableError,
    TemplateNotFoundError,
)
from screenvision.domain.services import PromptTemplateRepository
from screenvision.domain.templates import (
    BUILTIN_TEMPLATES,
    DEFAULT_TEMPLATE_ID,
    find_builtin,
)

logger = logging.getLogger(__name__)


class TemplateCatalog:
    """Lists, selects and edits prompt templates.

    Built-in templates are always listed first and are read-only. Custom
    templates live in the repository.
    """

    def __init__(
        self,
        repository: PromptTemplateRepository,
        active_id: str = DEFAULT_TEMPLATE_ID,
    ) -> None:
        """Initialize the catalog.

        Args:
            repository: Storage for custom templates.
            active_id: Initially selected template ID. Not validated until
                active() is called.
        """
        self._repository = repository
        self._active_id = active_id

    @property
    def active_id(self) -> str:
        return self._active_id

    async def list_templates(self) -> list[PromptTemplate]:
        custom = await self._repository.find_all()
        return [*BUILTIN_TEMPLATES, *custom]

    async def get(self, template_id: str) -> PromptTemplate:
        """Find a template by ID.

        Raises:
            TemplateNotFoundError: Unknown ID.
        """
        template = find_builtin(template_id)
        if template is not None:
            return template
        template = await self._repository.find_by_id(template_id)
        if template is None:
            raise TemplateNotFoundError(template_id)
        return template

    async def active(self) -> PromptTemplate:
        """Return the selected template, falling back to the default one."""
        try:
            return await self.get(self._active_id)
        except TemplateNotFoundError:
            logger.warning(
                "Active template '%s' not found, using '%s'",
                self._active_id,
                DEFAULT_TEMPLATE_ID,
            )
            self._active_id = DEFAULT_TEMPLATE_ID
            return await self.get(DEFAULT_TEMPLATE_ID)

    async def set_active(self, template_id: str) -> PromptTemplate:
        """Select a template.

        Raises:
            TemplateNotFoundError: Unknown ID.
        """
        template = await self.get(template_id)
        self._active_id = template.id
        return template

    async def create(
        self,
        name: str,
        analyze_template: str,
        chat_template: str,
        description: str = "",
        icon: str = "",
    ) -> PromptTemplate:
        """Create and store a custom template.

        Returns:
            The stored template with its generated ID.
        """
        template = PromptTemplate(
            id=f"custom-{uuid4().hex[:12]}",
            name=name,
            analyze_template=analyze_template,
            chat_template=chat_template,
            description=description,
            icon=icon,
            builtin=False,
            created_at=datetime.now(timezone.utc),
        )
        await self._repository.save(template)
        logger.info("Created prompt template '%s' (%s)", name, template.id)
        return template

    async def update(
        self,
        template_id: str,
        *,
        name: str | None = None,
        analyze_template: str | None = None,
        chat_template: str | None = None,
        description: str | None = None,
        icon: str | None = None,
    ) -> PromptTemplate:
        """Change fields of a custom template. None leaves a field unchanged.

        Raises:
            TemplateNotEditableError: The template is built-in.
            TemplateNotFoundError: Unknown ID.
        """
        current = await self._get_custom(template_id)
        changes = {
            key: value
            for key, value in (
                ("name", name),
                ("analyze_template", analyze_template),
                ("chat_template", chat_template),
                ("description", description),
                ("icon", icon),
            )
            if value is not None
        }
        updated = dataclasses.replace(current, **changes)
        await self._repository.save(updated)
        return updated

    async def delete(self, template_id: str) -> None:
        """Delete a custom template.

        Deleting the active template selects the default one.

        Raises:
            TemplateNotEditableError: The template is built-in.
            TemplateNotFoundError: Unknown ID.
        """
        if find_builtin(template_id) is not None:
            raise TemplateNotEditableError(template_id)
        if not await self._repository.delete(template_id):
            raise TemplateNotFoundError(template_id)
        if self._active_id == template_id:
            self._active_id = DEFAULT_TEMPLATE_ID
        logger.info("Deleted prompt template %s", template_id)

    async def duplicate(self, template_id: str) -> PromptTemplate:
        """Create a custom copy of any template, built-ins included.

        Raises:
            TemplateNotFoundError: Unknown ID.
        """
        original = await self.get(template_id)
        return await self.create(
            name=f"{original.name} (Copy)",
            analyze_template=original.analyze_template,
            chat_template=original.chat_template,
            description=original.description,
            icon=original.icon,
        )

    async def _get_custom(self, template_id: str) -> PromptTemplate:
        if find_builtin(template_id) is not None:
            raise TemplateNotEditableError(template_id)
        template = await self._repository.find_by_id(template_id)
        if template is None:
            raise TemplateNotFoundError(template_id)
        return template
