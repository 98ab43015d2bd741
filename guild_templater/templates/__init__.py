"""Server templates: data model and registry."""

from .models import Category, Channel, ChannelKind, Permission, PermissionOverride, Role, Template
from .registry import (
    TemplatePreview,
    build_preview,
    has_template,
    list_templates,
    load_template,
    resolve_template,
    template_ids,
)

__all__ = [
    "Category",
    "Channel",
    "ChannelKind",
    "Permission",
    "PermissionOverride",
    "Role",
    "Template",
    "TemplatePreview",
    "build_preview",
    "has_template",
    "list_templates",
    "load_template",
    "resolve_template",
    "template_ids",
]
