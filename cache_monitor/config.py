from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Filstier
    config_dir: str = str(Path.home() / ".config" / "cache-monitor")

    # Scanning
    progress_interval_files: int = 500  # Emit streaming progress every N files
    run_initial_sweep: bool = True  # Run a sweep immediately at startup

    # Logging konfiguration
    log_level: str = "INFO"
    log_file_path: str = "logs/cache_monitor.log"
    log_retention_days: int = 30
    log_to_console: bool = True  # Disable when running headless as a background service

    # Server
    host: str = "127.0.0.1"
    port: int = 8000

    model_config = SettingsConfigDict(
        env_prefix="CACHE_MONITOR_", env_file="settings.env", extra="ignore"
    )

    @property
    def log_directory(self) -> Path:
        """Returnerer log directory som Path objekt"""
        return Path(self.log_file_path).parent

    @property
    def config_path(self) -> Path:
        return Path(self.config_dir).expanduser()
