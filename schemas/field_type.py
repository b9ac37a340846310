"""Field type definition schemas"""

from collections.abc import Callable, Mapping
from enum import Enum
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class FieldCapability(str, Enum):
    HAS_OPTIONS = "has_options"
    IS_STATIC = "is_static"
    CAPTURES_VALUE = "captures_value"
    SUPPORTS_ENTRY_LIST = "supports_entry_list"
    HAS_PLACEHOLDER = "has_placeholder"


class FieldCategory(str, Enum):
    BASIC = "Basic"
    SPECIAL = "Special"
    FILE = "File"
    CONTENT = "Content"
    SELECT = "Select"
    DISCONTINUED = "Discontinued"


# Capabilities a legacy entry has unless it opts out
DEFAULT_CAPABILITIES = frozenset({
    FieldCapability.CAPTURES_VALUE,
    FieldCapability.SUPPORTS_ENTRY_LIST,
    FieldCapability.HAS_PLACEHOLDER,
})


class FieldSetup(BaseModel):
    """Configuration editor and preview hooks for a field type"""
    template_ref: Optional[str] = None
    preview_ref: Optional[str] = None
    default_config: dict[str, Any] = Field(default_factory=dict)
    unsupported_options: set[str] = Field(default_factory=set)


class FieldAssets(BaseModel):
    scripts: list[str] = Field(default_factory=list)
    styles: list[str] = Field(default_factory=list)


class FieldTypeDefinition(BaseModel):
    """
    One entry of the field type catalog.

    ``submit_handler_ref`` and ``viewer_hook_ref`` are callables and are
    never serialized. A definition without ``setup`` is valid in the
    catalog but cannot be shown in the form editor.
    """
    model_config = ConfigDict(arbitrary_types_allowed=True)

    label: str
    description: str = ""
    renderer_ref: Optional[str] = None
    category: str = FieldCategory.BASIC.value
    icon: Optional[str] = None
    capabilities: frozenset[FieldCapability] = DEFAULT_CAPABILITIES
    options_mode: Optional[Literal["single", "multiple"]] = None
    setup: Optional[FieldSetup] = None
    submit_handler_ref: Optional[Callable[..., Any]] = Field(default=None, exclude=True)
    viewer_hook_ref: Optional[Callable[..., Any]] = Field(default=None, exclude=True)
    assets: FieldAssets = Field(default_factory=FieldAssets)

    @property
    def is_renderable_in_editor(self) -> bool:
        return self.setup is not None

    def has_capability(self, capability: FieldCapability) -> bool:
        return capability in self.capabilities

    def apply_defaults(self, config: Optional[Mapping[str, Any]] = None) -> dict[str, Any]:
        """Merge the type's default configuration under an instance config"""
        merged = dict(self.setup.default_config) if self.setup else {}
        merged.update(config or {})
        return merged

    @classmethod
    def from_legacy(cls, type_key: str, entry: Mapping[str, Any]) -> "FieldTypeDefinition":
        """
        Build a definition from a catalog entry in the legacy array shape
        (``field``, ``file``, ``setup.template``, ``not_supported``...).

        Missing keys never raise: the label falls back to the type key and
        a missing ``setup`` leaves the type not renderable in the editor.
        """
        setup_entry = entry.get("setup")
        not_supported = set()
        setup = None
        if isinstance(setup_entry, Mapping):
            not_supported = set(setup_entry.get("not_supported") or [])
            setup = FieldSetup(
                template_ref=setup_entry.get("template"),
                preview_ref=setup_entry.get("preview"),
                default_config=dict(setup_entry.get("default") or {}),
                unsupported_options=not_supported - {"entry_list"},
            )

        capabilities = set()
        options = entry.get("options")
        if options:
            capabilities.add(FieldCapability.HAS_OPTIONS)
        if entry.get("static"):
            capabilities.add(FieldCapability.IS_STATIC)
        if entry.get("capture", True):
            capabilities.add(FieldCapability.CAPTURES_VALUE)
        if "entry_list" not in not_supported:
            capabilities.add(FieldCapability.SUPPORTS_ENTRY_LIST)
        if entry.get("placeholder", True):
            capabilities.add(FieldCapability.HAS_PLACEHOLDER)

        handler = entry.get("handler")
        viewer = entry.get("viewer")

        return cls(
            label=str(entry.get("field") or type_key),
            description=str(entry.get("description") or ""),
            renderer_ref=entry.get("file"),
            category=str(entry.get("category") or FieldCategory.BASIC.value),
            icon=entry.get("icon"),
            capabilities=frozenset(capabilities),
            options_mode=options if options in ("single", "multiple") else None,
            setup=setup,
            submit_handler_ref=handler if callable(handler) else None,
            viewer_hook_ref=viewer if callable(viewer) else None,
            assets=FieldAssets(
                scripts=list(entry.get("scripts") or []),
                styles=list(entry.get("styles") or []),
            ),
        )


class FieldTypeRead(BaseModel):
    """Schema for reading field types from the registry"""
    type_key: str
    label: str
    description: str = ""
    category: str
    icon: Optional[str] = None
    renderer_ref: Optional[str] = None
    capabilities: list[FieldCapability] = Field(default_factory=list)
    options_mode: Optional[str] = None
    renderable_in_editor: bool
    setup: Optional[FieldSetup] = None
    assets: FieldAssets = Field(default_factory=FieldAssets)
    has_submit_handler: bool = False
    has_viewer: bool = False

    @classmethod
    def from_definition(cls, type_key: str, definition: FieldTypeDefinition) -> "FieldTypeRead":
        return cls(
            type_key=type_key,
            label=definition.label,
            description=definition.description,
            category=definition.category,
            icon=definition.icon,
            renderer_ref=definition.renderer_ref,
            capabilities=sorted(definition.capabilities, key=lambda c: c.value),
            options_mode=definition.options_mode,
            renderable_in_editor=definition.is_renderable_in_editor,
            setup=definition.setup,
            assets=definition.assets,
            has_submit_handler=definition.submit_handler_ref is not None,
            has_viewer=definition.viewer_hook_ref is not None,
        )
