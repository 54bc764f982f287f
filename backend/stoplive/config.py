from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    arrivals_api_base_url: str = "https://finalyearproject-backend-hpon.onrender.com/api"
    http_timeout_seconds: float = 8.0
    geolocation_timeout_ms: int = 10_000
    geolocation_maximum_age_ms: int = 5_000
    geolocation_high_accuracy: bool = True
    session_idle_seconds: int = 300
    session_reap_interval_seconds: int = 60
    fallback_lat: float = 13.0827
    fallback_lng: float = 80.2707

    model_config = {"env_prefix": "", "case_sensitive": False}


settings = Settings()
