import os
import sys
from pathlib import Path

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _default_data_dir() -> Path:
    if env := os.environ.get("PAKINV_DATA_DIR"):
        return Path(env)
    if sys.platform == "win32":
        base = Path(os.environ.get("LOCALAPPDATA", Path.home() / "AppData" / "Local"))
    else:
        base = Path(os.environ.get("XDG_DATA_HOME", Path.home() / ".local" / "share"))
    return base / "com.pakinvalidator.app"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="PAKINV_",
        extra="ignore",
    )

    data_dir: Path = Path("")
    game_path: Path = Path("")
    staging_dir: Path = Path("")
    scripts_dir: Path = Path("")
    reference_list: Path = Path("")
    temp_dir: Path = Path("")
    quickbms_path: str = "quickbms"
    host: str = "127.0.0.1"
    port: int = 8426

    @model_validator(mode="after")
    def _resolve_data_paths(self) -> "Settings":
        if self.data_dir == Path(""):
            self.data_dir = _default_data_dir()
        if self.staging_dir == Path(""):
            self.staging_dir = self.data_dir / "staging"
        if self.scripts_dir == Path(""):
            self.scripts_dir = self.data_dir / "scripts"
        if self.reference_list == Path(""):
            self.reference_list = self.scripts_dir / "dmc5_pak_names_release.list"
        if self.temp_dir == Path(""):
            self.temp_dir = self.data_dir / "temp" / "qbms"
        return self


settings = Settings()
