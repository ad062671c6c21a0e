# cas_e2e/settings.py
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    CAS_BASE_URL: str = "https://localhost:8443/cas"
    CAS_SERVICE_URL: str = "https://apereo.github.io"
    CAS_USERNAME: str = "casuser"
    CAS_PASSWORD: str = "Mellon"

    HEADLESS: bool = True
    SLOW_MO: int = 0                          # ms between browser operations
    NAVIGATION_TIMEOUT: int = 30000           # ms
    GOTO_RETRIES: int = 1                     # attempts per goto(); 1 = no retry
    GOTO_RETRY_DELAY: float = 2.0
    SCREENSHOT_DIR: str = "/tmp"

    SCENARIOS_DIR: str = "playwright_scenarios"
    SCENARIO_TIMEOUT: int = 120               # seconds of silence before a scenario is killed
    CAS_WAIT_ATTEMPTS: int = 30
    CAS_WAIT_DELAY: float = 2.0

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    def login_url(self, service: str | None = None) -> str:
        service = self.CAS_SERVICE_URL if service is None else service
        url = f"{self.CAS_BASE_URL.rstrip('/')}/login"
        return f"{url}?service={service}" if service else url

settings = Settings()
