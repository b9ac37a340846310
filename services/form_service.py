"""Accessors over form configuration"""

from schemas.form import Form, FormField


def get_fields(form: Form, by_slug: bool = False) -> dict[str, FormField]:
    """
    Fields of a form keyed by field ID, or by slug when ``by_slug`` is set.
    Fields without a slug keep their ID as key.
    """
    if not by_slug:
        return dict(form.fields)
    return {(field.slug or field_id): field for field_id, field in form.fields.items()}


def get_fields_of_type(form: Form, *type_keys: str) -> list[FormField]:
    return [field for field in form.fields.values() if field.type in type_keys]


def should_send_mail(form: Form) -> bool:
    """Whether the form mails its submissions when they are stored"""
    return bool(form.mailer and form.mailer.on_insert)
