from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

class AppConfig(BaseSettings):
    registry_modules: list[str] = Field(
        default_factory=list,
        description="Modules imported at start-up to register extractor and scorer classes",
    )
    log_level: str = Field(default="INFO", description="Log level for the service")

    model_config = SettingsConfigDict(
        env_prefix="MODELSPEC_", env_file=".env", env_file_encoding="utf-8"
    )


app_config = AppConfig()
