from pydantic_settings import BaseSettings, SettingsConfigDict


class SqlWeaveBaseSettings(BaseSettings):
    """Base class for sqlweave settings.

    Values are read from keyword arguments first, then from ``SQLWEAVE_``
    prefixed environment variables, then from a local ``.env`` file.
    """

    model_config = SettingsConfigDict(
        env_prefix="SQLWEAVE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_nested_delimiter="__"
    )
