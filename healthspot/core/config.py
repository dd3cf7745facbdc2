from pydantic import BaseModel
import os

class Settings(BaseModel):
    providers_api_url: str = os.getenv("HEALTHSPOT_PROVIDERS_API_URL", "http://localhost:3001/api/maps")
    default_query: str = os.getenv("HEALTHSPOT_DEFAULT_QUERY", "healthcare provider")
    search_radius_m: int = int(os.getenv("HEALTHSPOT_SEARCH_RADIUS_M", "5000"))
    # San Francisco until a location or a result center is known
    default_lat: float = float(os.getenv("HEALTHSPOT_DEFAULT_LAT", "37.7749"))
    default_lng: float = float(os.getenv("HEALTHSPOT_DEFAULT_LNG", "-122.4194"))
    geolocation_timeout_s: float = float(os.getenv("HEALTHSPOT_GEOLOCATION_TIMEOUT_S", "10"))
    http_timeout_s: float = float(os.getenv("HEALTHSPOT_HTTP_TIMEOUT_S", "20"))
    http_max_retries: int = int(os.getenv("HEALTHSPOT_HTTP_MAX_RETRIES", "2"))
    log_level: str = os.getenv("HEALTHSPOT_LOG_LEVEL", "INFO")
    api_key: str = os.getenv("HEALTHSPOT_API_KEY", "")

settings = Settings()
