from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from functools import lru_cache
from importlib import resources
from typing import List, Optional, Tuple

from ..config import TEMPLATE_IDS
from ..errors import TemplateLoadError, TemplateNotFoundError
from .models import Category, Role, Template

log = logging.getLogger("guild_templater.templates")

DATA_DIRECTORY = "data"


@dataclass(frozen=True, slots=True)
class TemplatePreview:
    """Read-only summary of a template used to drive an execution."""

    id: str
    name: str
    description: str
    role_count: int
    category_count: int
    channel_count: int
    roles: Tuple[Role, ...]
    categories: Tuple[Category, ...]
    use_case: Optional[str] = None
    icon: Optional[str] = None

    @property
    def total_items(self) -> int:
        return self.role_count + self.category_count + self.channel_count


def template_ids() -> List[str]:
    return list(TEMPLATE_IDS)


def has_template(template_id: str) -> bool:
    return template_id in TEMPLATE_IDS


@lru_cache(maxsize=None)
def load_template(template_id: str) -> Template:
    """Read and parse a template file. Results are cached per id."""
    if not has_template(template_id):
        raise TemplateNotFoundError(
            f"Template '{template_id}' not found",
            suggestion=f"Available templates: {', '.join(TEMPLATE_IDS)}",
        )
    try:
        data_file = resources.files(__package__).joinpath(DATA_DIRECTORY).joinpath(f"{template_id}.json")
        raw = data_file.read_text(encoding="utf-8")
        template = Template.from_dict(json.loads(raw))
    except (OSError, ValueError, KeyError, TypeError) as exc:
        log.warning("Failed to load template %s: %s", template_id, exc)
        raise TemplateLoadError(f"Failed to load template '{template_id}'") from exc
    if template.id != template_id:
        raise TemplateLoadError(
            f"Template file '{template_id}.json' declares id '{template.id}'"
        )
    return template


def build_preview(template: Template) -> TemplatePreview:
    # Stable sort keeps file order for roles that share a position.
    roles = tuple(sorted(template.roles, key=lambda role: role.position, reverse=True))
    return TemplatePreview(
        id=template.id,
        name=template.name,
        description=template.description,
        role_count=len(template.roles),
        category_count=len(template.categories),
        channel_count=template.channel_count,
        roles=roles,
        categories=template.categories,
        use_case=template.use_case,
        icon=template.icon,
    )


def resolve_template(template_id: str) -> Tuple[Template, TemplatePreview]:
    template = load_template(template_id)
    return template, build_preview(template)


def list_templates() -> List[TemplatePreview]:
    return [build_preview(load_template(template_id)) for template_id in TEMPLATE_IDS]
