from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./form_fields.db"

    # Upload storage (public uploads land in dated subdirectories)
    UPLOADS_DIR: str = "./uploads"
    UPLOADS_URL: str = "http://localhost:8000/uploads"
    MAX_UPLOAD_BYTES: int = 10 * 1024 * 1024
    ALLOWED_UPLOAD_EXTENSIONS: str = (
        "jpg,jpeg,png,gif,webp,pdf,doc,docx,xls,xlsx,ppt,pptx,odt,txt,csv,zip,mp3,mp4,mov"
    )

    # Server side salt for secret upload directories.
    # Must stay stable for the life of the installation.
    NONCE_SALT: str

    # Fallback purge for private uploads of abandoned submissions
    PRIVATE_UPLOAD_TTL_SECONDS: int = 3600

    # Optional persistent job store for the cleanup scheduler (leave empty for in-memory)
    SCHEDULER_JOBSTORE_URL: str | None = None

    # Comma separated modules exposing register(hooks) to contribute field types
    FIELD_TYPE_PACKAGES: str = ""

    FIELD_TEMPLATES_PATH: str = "fields"
    FIELD_ASSETS_URL: str = "/static/fields"

    RECAPTCHA_SECRET_KEY: str | None = None
    RECAPTCHA_VERIFY_URL: str = "https://www.google.com/recaptcha/api/siteverify"

    DEBUG: bool = False

    # Sentry error tracking
    SENTRY_DSN: str | None = None
    SENTRY_ENVIRONMENT: str = "development"

    @property
    def allowed_upload_extensions(self) -> set[str]:
        return {
            ext.strip().lower().lstrip(".")
            for ext in self.ALLOWED_UPLOAD_EXTENSIONS.split(",")
            if ext.strip()
        }

    @property
    def field_type_packages(self) -> list[str]:
        return [pkg.strip() for pkg in self.FIELD_TYPE_PACKAGES.split(",") if pkg.strip()]

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8"
    }


settings = Settings()
