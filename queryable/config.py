import os
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel

from queryable.v1.models import BasicAuth, StudioOptions

DEFAULT_DATA_DIR = os.path.join(os.path.expanduser("~"), ".local", "share", "queryable")
DEFAULT_EDITOR_URL = "https://studio.outerbase.com/embed/starbase"


def _flag(value: Optional[str]) -> bool:
    return (value or "").strip().lower() in ("1", "true", "yes", "on")


class Settings(BaseModel):
    data_dir: str = DEFAULT_DATA_DIR
    studio_username: Optional[str] = None
    studio_password: Optional[str] = None
    studio_disable_auth: bool = False
    editor_url: str = DEFAULT_EDITOR_URL
    log_level: str = "INFO"
    host: str = "127.0.0.1"
    port: int = 8000

    def studio_options(self) -> StudioOptions:
        basic_auth = None
        if self.studio_username and self.studio_password:
            basic_auth = BasicAuth(
                username=self.studio_username, password=self.studio_password
            )
        return StudioOptions(
            dangerously_disable_auth=self.studio_disable_auth, basic_auth=basic_auth
        )


@lru_cache()
def get_settings() -> Settings:
    load_dotenv()
    return Settings(
        data_dir=os.getenv("QUERYABLE_DATA_DIR") or DEFAULT_DATA_DIR,
        studio_username=os.getenv("STUDIO_USERNAME"),
        studio_password=os.getenv("STUDIO_PASSWORD"),
        studio_disable_auth=_flag(os.getenv("STUDIO_DISABLE_AUTH")),
        editor_url=os.getenv("STUDIO_EDITOR_URL") or DEFAULT_EDITOR_URL,
        log_level=os.getenv("QUERYABLE_LOG_LEVEL", "INFO").upper(),
        host=os.getenv("QUERYABLE_HOST", "127.0.0.1"),
        port=int(os.getenv("QUERYABLE_PORT", "8000")),
    )
