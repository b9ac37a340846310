import typer

from typer import Argument, Option

from core.hooks import Hooks
from services.field_type_registry_service import FieldTypeRegistry, load_field_type_plugins
from services.private_upload_service import build_private_upload_service

app = typer.Typer()


@app.command("field-types")
def field_types(
    builtin_only: bool = Option(False, "--builtin-only", help="Skip plugin packages"),
):
    hooks = Hooks()
    if not builtin_only:
        load_field_type_plugins(hooks)

    registry = FieldTypeRegistry(hooks)
    field_types = registry.get_all_types()
    for type_key in sorted(field_types, key=lambda key: (field_types[key].category, key)):
        definition = field_types[type_key]
        capabilities = ",".join(sorted(c.value for c in definition.capabilities))
        print(f"{type_key:<20} {definition.category:<12} {capabilities}")


@app.command("secret-dir")
def secret_dir(
    field_id: str = Argument(...),
    form_id: str = Argument(...),
):
    service = build_private_upload_service()
    print(service.secret_dir_path(field_id, form_id))


@app.command("purge")
def purge(
    field_id: str = Argument(...),
    form_id: str = Argument(...),
):
    service = build_private_upload_service()
    if service.purge(field_id, form_id):
        print(f"Deleted {service.secret_dir_path(field_id, form_id)}")
    else:
        print("Nothing to delete")


if __name__ == "__main__":
    app()
