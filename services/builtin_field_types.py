"""Built-in field type catalog"""

from core.settings import settings
from schemas.field_type import (
    FieldAssets,
    FieldCapability as Cap,
    FieldCategory,
    FieldSetup,
    FieldTypeDefinition,
)
from services.field_handlers import captcha_check, run_calculation
from services.field_viewers import filter_options_calculator, handle_file_view, star_rating_viewer

CAPTURING = frozenset({Cap.CAPTURES_VALUE, Cap.SUPPORTS_ENTRY_LIST, Cap.HAS_PLACEHOLDER})
STATIC = CAPTURING | {Cap.IS_STATIC}
OPTIONS = STATIC | {Cap.HAS_OPTIONS}
NON_CAPTURING = frozenset({Cap.HAS_PLACEHOLDER})

HIDE_LABEL_CAPTION_REQUIRED = {"hide_label", "caption", "required"}


def _ref(path: str) -> str:
    return f"{settings.FIELD_TEMPLATES_PATH.rstrip('/')}/{path}"


def _asset(path: str) -> str:
    return f"{settings.FIELD_ASSETS_URL.rstrip('/')}/{path}"


def _setup(folder: str, template: str = "config.html", preview: str | None = "preview.html",
           default: dict | None = None, unsupported: set[str] | None = None) -> FieldSetup:
    return FieldSetup(
        template_ref=_ref(f"{folder}/{template}"),
        preview_ref=_ref(f"{folder}/{preview}") if preview else None,
        default_config=dict(default or {}),
        unsupported_options=set(unsupported or ()),
    )


def builtin_field_types() -> dict[str, FieldTypeDefinition]:
    """
    Build the fixed built-in table.

    A fresh mapping is returned on every call so callers may change it
    without affecting other catalogs.
    """
    generic_input = _ref("generic-input.html")

    return {
        # basic
        "text": FieldTypeDefinition(
            label="Single Line Text",
            description="Single Line Text",
            renderer_ref=generic_input,
            category=FieldCategory.BASIC.value,
            capabilities=CAPTURING,
            setup=_setup("text"),
        ),
        "hidden": FieldTypeDefinition(
            label="Hidden",
            description="Hidden",
            renderer_ref=_ref("hidden/field.html"),
            category=FieldCategory.BASIC.value,
            capabilities=STATIC,
            setup=_setup("hidden", template="setup.html", unsupported=HIDE_LABEL_CAPTION_REQUIRED),
        ),
        "email": FieldTypeDefinition(
            label="Email Address",
            description="Email Address",
            renderer_ref=generic_input,
            category=FieldCategory.BASIC.value,
            capabilities=CAPTURING,
            setup=_setup("email"),
        ),
        "button": FieldTypeDefinition(
            label="Button",
            description="Button, Submit and Reset types",
            renderer_ref=_ref("button/field.html"),
            category=FieldCategory.BASIC.value,
            capabilities=NON_CAPTURING,
            setup=_setup(
                "button",
                template="config_template.html",
                default={"class": "btn btn-default", "type": "submit"},
                unsupported=HIDE_LABEL_CAPTION_REQUIRED,
            ),
        ),
        "phone_better": FieldTypeDefinition(
            label="Phone Number (Better)",
            description="Phone number with advanced options and international formatting",
            renderer_ref=_ref("phone_better/field.html"),
            category=FieldCategory.BASIC.value,
            capabilities=CAPTURING,
            setup=_setup("phone_better", default={"default": ""}),
            assets=FieldAssets(
                scripts=[_asset("phone_better/assets/js/intlTelInput.min.js")],
                styles=[_asset("phone_better/assets/css/intlTelInput.css")],
            ),
        ),
        "phone": FieldTypeDefinition(
            label="Phone Number (Basic)",
            description="Phone number with masking",
            renderer_ref=generic_input,
            category=FieldCategory.BASIC.value,
            capabilities=CAPTURING,
            setup=_setup("phone", default={"default": "", "type": "local", "custom": "(999)999-9999"}),
        ),
        "paragraph": FieldTypeDefinition(
            label="Paragraph Textarea",
            description="Paragraph Textarea",
            renderer_ref=_ref("paragraph/field.html"),
            category=FieldCategory.BASIC.value,
            capabilities=CAPTURING,
            setup=_setup("paragraph", template="config_template.html", default={"rows": "4"}),
        ),
        "wysiwyg": FieldTypeDefinition(
            label="Rich Editor",
            description="TinyMCE WYSIWYG editor",
            renderer_ref=_ref("wysiwyg/field.html"),
            category=FieldCategory.BASIC.value,
            capabilities=CAPTURING,
            setup=_setup("wysiwyg", template="config_template.html"),
            assets=FieldAssets(
                scripts=[_asset("wysiwyg/wysiwyg.js")],
                styles=[_asset("wysiwyg/wysiwyg.min.css")],
            ),
        ),

        # special
        "calculation": FieldTypeDefinition(
            label="Calculation",
            description="Calculate values",
            renderer_ref=_ref("calculation/field.html"),
            category=FieldCategory.SPECIAL.value,
            capabilities=CAPTURING,
            submit_handler_ref=run_calculation,
            setup=_setup(
                "calculation",
                default={"element": "h3", "classes": "total-line", "before": "Total:", "after": ""},
            ),
        ),
        "range_slider": FieldTypeDefinition(
            label="Range Slider",
            description="Range Slider input field",
            renderer_ref=_ref("range_slider/field.html"),
            category=FieldCategory.SPECIAL.value,
            capabilities=CAPTURING,
            setup=_setup(
                "range_slider",
                default={
                    "default": 1,
                    "step": 1,
                    "min": 0,
                    "max": 100,
                    "showval": 1,
                    "suffix": "",
                    "prefix": "",
                    "color": "#00ff00",
                    "handle": "#ffffff",
                    "handleborder": "#cccccc",
                    "trackcolor": "#e6e6e6",
                },
            ),
            assets=FieldAssets(styles=[_asset("range_slider/rangeslider.css")]),
        ),
        "star_rating": FieldTypeDefinition(
            label="Star Rating",
            description="Star rating input for feedback",
            renderer_ref=_ref("star-rate/field.html"),
            category=FieldCategory.SPECIAL.value,
            capabilities=CAPTURING,
            viewer_hook_ref=star_rating_viewer,
            setup=_setup(
                "star-rate",
                default={
                    "number": 5,
                    "space": 3,
                    "size": 13,
                    "color": "#FFAA00",
                    "track_color": "#AFAFAF",
                    "type": "star",
                },
            ),
        ),

        # file
        "file": FieldTypeDefinition(
            label="File",
            description="File Uploader",
            renderer_ref=_ref("file/field.html"),
            category=FieldCategory.FILE.value,
            capabilities=CAPTURING,
            viewer_hook_ref=handle_file_view,
            setup=_setup("file", template="config_template.html"),
        ),
        "advanced_file": FieldTypeDefinition(
            label="Advanced File Uploader",
            description="Inline, multi file uploader",
            renderer_ref=_ref("advanced_file/field.html"),
            category=FieldCategory.FILE.value,
            capabilities=CAPTURING,
            viewer_hook_ref=handle_file_view,
            setup=_setup("advanced_file", template="config_template.html"),
            assets=FieldAssets(scripts=[_asset("advanced_file/uploader.js")]),
        ),

        # content
        "html": FieldTypeDefinition(
            label="HTML",
            description="Add text/html content",
            renderer_ref=_ref("html/field.html"),
            category=FieldCategory.CONTENT.value,
            icon=_asset("html/icon.png"),
            capabilities=NON_CAPTURING,
            setup=_setup("html", template="config_template.html", unsupported=HIDE_LABEL_CAPTION_REQUIRED),
        ),
        "section_break": FieldTypeDefinition(
            label="Section Break",
            description="An HR tag to separate sections of your form.",
            renderer_ref=_ref("section-break/field.html"),
            category=FieldCategory.CONTENT.value,
            capabilities=STATIC,
            setup=_setup("section-break", template="setup.html", preview=None,
                         unsupported=HIDE_LABEL_CAPTION_REQUIRED),
        ),

        # select
        "dropdown": FieldTypeDefinition(
            label="Dropdown Select",
            description="Dropdown Select",
            renderer_ref=_ref("dropdown/field.html"),
            category=FieldCategory.SELECT.value,
            capabilities=OPTIONS,
            options_mode="single",
            viewer_hook_ref=filter_options_calculator,
            setup=_setup("dropdown", template="config_template.html"),
        ),
        "checkbox": FieldTypeDefinition(
            label="Checkbox",
            description="Checkbox",
            renderer_ref=_ref("checkbox/field.html"),
            category=FieldCategory.SELECT.value,
            capabilities=OPTIONS,
            options_mode="multiple",
            viewer_hook_ref=filter_options_calculator,
            setup=_setup("checkbox", template="config_template.html"),
        ),
        "radio": FieldTypeDefinition(
            label="Radio",
            description="Radio",
            renderer_ref=_ref("radio/field.html"),
            category=FieldCategory.SELECT.value,
            capabilities=OPTIONS,
            viewer_hook_ref=filter_options_calculator,
            setup=_setup("radio", template="config_template.html"),
        ),
        "filtered_select2": FieldTypeDefinition(
            label="Autocomplete",
            description="Select2 dropdown",
            renderer_ref=_ref("select2/field/field.html"),
            category=FieldCategory.SELECT.value,
            capabilities=OPTIONS,
            options_mode="multiple",
            setup=_setup("select2/field"),
            assets=FieldAssets(
                scripts=[_asset("select2/js/select2.min.js")],
                styles=[_asset("select2/css/select2.css")],
            ),
        ),
        "date_picker": FieldTypeDefinition(
            label="Date Picker",
            description="Date Picker",
            renderer_ref=_ref("date_picker/datepicker.html"),
            category=FieldCategory.SELECT.value,
            capabilities=CAPTURING,
            setup=_setup("date_picker", template="setup.html", default={"format": "yyyy-mm-dd"}),
        ),
        "toggle_switch": FieldTypeDefinition(
            label="Toggle Switch",
            description="Toggle Switch",
            renderer_ref=_ref("toggle_switch/field.html"),
            category=FieldCategory.SELECT.value,
            capabilities=OPTIONS,
            options_mode="single",
            viewer_hook_ref=filter_options_calculator,
            setup=_setup("toggle_switch", template="config_template.html"),
        ),
        "color_picker": FieldTypeDefinition(
            label="Color Picker",
            description="Color Picker",
            renderer_ref=_ref("color_picker/field.html"),
            category=FieldCategory.SELECT.value,
            capabilities=CAPTURING,
            setup=_setup("color_picker", template="setup.html", default={"default": "#FFFFFF"}),
        ),
        "states": FieldTypeDefinition(
            label="State/ Province Select",
            description="Dropdown select for US states and Canadian provinces.",
            renderer_ref=_ref("states/field.html"),
            category=FieldCategory.SELECT.value,
            capabilities=CAPTURING - {Cap.HAS_PLACEHOLDER},
            setup=_setup("states", template="config_template.html"),
        ),

        # discontinued
        "recaptcha": FieldTypeDefinition(
            label="reCAPTCHA",
            description="reCAPTCHA anti-spam field",
            renderer_ref=_ref("recaptcha/field.html"),
            category=FieldCategory.DISCONTINUED.value,
            capabilities=frozenset({Cap.SUPPORTS_ENTRY_LIST, Cap.HAS_PLACEHOLDER}),
            submit_handler_ref=captcha_check,
            setup=_setup("recaptcha", unsupported={"caption", "required"}),
        ),
    }
