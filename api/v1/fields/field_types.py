"""Field Types API endpoints - read-only, serves the merged field type catalog"""

from fastapi import APIRouter, Depends, HTTPException, status

from schemas.field_type import FieldTypeRead
from services.field_type_registry_service import FieldTypeRegistry, get_field_type_registry

router = APIRouter()


@router.get("/", response_model=list[FieldTypeRead])
def list_field_types(registry: FieldTypeRegistry = Depends(get_field_type_registry)):
    """
    List all field types: built-in ones plus those contributed by plugins.

    Sorted by category, then label.
    """
    field_types = registry.get_all_types()
    return [
        FieldTypeRead.from_definition(type_key, definition)
        for type_key, definition in sorted(
            field_types.items(), key=lambda item: (item[1].category, item[1].label)
        )
    ]


@router.get("/{type_key}/", response_model=FieldTypeRead)
def get_field_type(type_key: str, registry: FieldTypeRegistry = Depends(get_field_type_registry)):
    """Get one field type, including its editor setup and assets."""
    definition = registry.get_definition(type_key)

    if definition is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Field type '{type_key}' not found"
        )

    return FieldTypeRead.from_definition(type_key, definition)
