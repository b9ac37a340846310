"""Field Type Registry - catalog of built-in and plugin contributed field types"""

import importlib
from collections.abc import Mapping
from typing import Any, Dict, Optional

from fastapi import Depends
from pydantic import ValidationError

from core.hooks import Hooks
from core.logging_config import get_logger
from core.settings import settings
from schemas.field_type import FieldTypeDefinition
from schemas.form import Form, FormField
from services.builtin_field_types import builtin_field_types

logger = get_logger(__name__)

# Extension point: filter receiving and returning the type_key -> definition mapping
FIELD_TYPES_FILTER = "get_field_types"
VIEW_FIELD_FILTER = "view_field_{type_key}"


def view_field_hook(type_key: str) -> str:
    return VIEW_FIELD_FILTER.format(type_key=type_key)


class FieldTypeRegistry:
    """
    Catalog of field types for one request.

    The catalog is rebuilt on each ``get_all_types()`` call from the
    built-in table plus whatever the ``get_field_types`` filter adds or
    overrides. Building it wires each type's viewer onto its
    ``view_field_{type_key}`` filter, once per type key per registry.
    """

    def __init__(self, hooks: Hooks):
        self.hooks = hooks
        self._wired_viewers: set[str] = set()

    def get_builtin_types(self) -> Dict[str, FieldTypeDefinition]:
        """Built-in types only, without plugin contributions"""
        return builtin_field_types()

    def get_all_types(self) -> Dict[str, FieldTypeDefinition]:
        contributed = self.hooks.apply_filters(FIELD_TYPES_FILTER, self.get_builtin_types())
        if not isinstance(contributed, Mapping):
            logger.error(
                f"Filter '{FIELD_TYPES_FILTER}' returned {type(contributed).__name__}, "
                f"falling back to built-in field types"
            )
            contributed = self.get_builtin_types()

        field_types: Dict[str, FieldTypeDefinition] = {}
        for type_key, entry in contributed.items():
            definition = self._coerce(str(type_key), entry)
            if definition is not None:
                field_types[str(type_key)] = definition

        self._wire_viewers(field_types)
        return field_types

    def get_definition(self, type_key: str) -> Optional[FieldTypeDefinition]:
        """Definition of one field type, or None for unknown keys"""
        field_types = self.get_all_types()
        if type_key in field_types:
            return field_types[type_key]
        return None

    def render_view(self, type_key: str, output: Any, field: FormField, form: Form) -> Any:
        """Run the rendering-time viewer filter for a field type"""
        self.get_all_types()
        return self.hooks.apply_filters(view_field_hook(type_key), output, field, form)

    def run_submit_handler(
        self,
        type_key: str,
        value: Any,
        field: FormField,
        form: Form,
        data: Dict[str, Any],
    ) -> Any:
        """Process a submitted value through the type's submit handler, if it has one"""
        definition = self.get_definition(type_key)
        if definition is None or definition.submit_handler_ref is None:
            return value
        return definition.submit_handler_ref(value, field, form, data)

    def _coerce(self, type_key: str, entry: Any) -> Optional[FieldTypeDefinition]:
        if isinstance(entry, FieldTypeDefinition):
            return entry
        if isinstance(entry, Mapping):
            try:
                return FieldTypeDefinition.from_legacy(type_key, entry)
            except (ValidationError, ValueError, TypeError) as e:
                logger.warning(f"Ignoring field type '{type_key}': malformed definition: {e}")
                return None
        logger.warning(f"Ignoring field type '{type_key}': unsupported definition {type(entry).__name__}")
        return None

    def _wire_viewers(self, field_types: Dict[str, FieldTypeDefinition]) -> None:
        for type_key, definition in field_types.items():
            if definition.viewer_hook_ref is None or type_key in self._wired_viewers:
                continue
            self.hooks.add_filter(view_field_hook(type_key), definition.viewer_hook_ref)
            self._wired_viewers.add(type_key)


def load_field_type_plugins(hooks: Hooks, packages: Optional[list[str]] = None) -> list[str]:
    """
    Import every configured field type package and let it register its hooks.

    Each package must expose ``register(hooks)``. Packages that fail to
    import or register are logged and skipped. Returns the names loaded.
    """
    if packages is None:
        packages = settings.field_type_packages

    loaded = []
    for package in packages:
        try:
            module = importlib.import_module(package)
        except ImportError as e:
            logger.error(f"Failed to import field type package '{package}': {e}")
            continue

        register = getattr(module, "register", None)
        if not callable(register):
            logger.warning(f"Field type package '{package}' has no register(hooks) function")
            continue

        try:
            register(hooks)
        except Exception as e:
            logger.error(f"Field type package '{package}' failed to register: {e}")
            continue

        loaded.append(package)
        logger.debug(f"Loaded field type package: {package}")

    return loaded


def get_hooks() -> Hooks:
    """Fresh hook registry for one request, with plugin packages registered"""
    hooks = Hooks()
    load_field_type_plugins(hooks)
    return hooks


def get_field_type_registry(hooks: Hooks = Depends(get_hooks)) -> FieldTypeRegistry:
    return FieldTypeRegistry(hooks)
