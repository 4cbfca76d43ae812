from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    PORT: int = 9100
    DEV: bool = False
    LOG_LEVEL: str = "INFO"

    # StorageOS control plane, only used when a volume has no local state file
    API_SECRETS_PATH: str = "/etc/storageos/secrets/api"
    API_ENDPOINT: str = "storageos"

    VOLUMES_PATH: str = "/var/lib/storageos/volumes"
    STATE_PATH: str = "/var/lib/storageos/state"
    DISKSTATS_PATH: str = "/proc/diskstats"
    SYS_BLOCK_PATH: str = "/sys/block"

    TIMEOUT: float = 10.0  # seconds a /metrics request waits for the scrape
    MOUNT_TIMEOUT: float = 5.0  # seconds before a statfs call marks the mount stuck
    DISABLED_COLLECTORS: List[str] = []


settings = Settings()
