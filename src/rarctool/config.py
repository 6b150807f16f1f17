import codecs

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from rarctool.constants import Compression, DirectoryConvention


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="RARCTOOL_",
        extra="ignore",
    )

    directory_convention: DirectoryConvention = DirectoryConvention.AUTO
    name_encoding: str = "shift_jis"
    default_compression: Compression = Compression.NONE
    log_level: str = "INFO"

    @model_validator(mode="after")
    def _normalise(self) -> "Settings":
        try:
            self.name_encoding = codecs.lookup(self.name_encoding).name
        except LookupError as exc:
            raise ValueError(f"Unknown name encoding: {self.name_encoding!r}") from exc
        self.log_level = self.log_level.upper()
        return self


settings = Settings()
