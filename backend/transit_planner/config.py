from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    data_dir: Path = Path("data")
    cache_dir: Path = Path("cache")
    cache_enabled: bool = True

    # Search radii and budgets, in planar degrees (~0.01 deg = 1 km)
    max_route_distance: float = 0.05
    max_transfer_distance: float = 0.01
    max_transfers: int = 10
    results_limit: int = 3

    near_transfer_threshold: float = 0.005
    proximate_transfer_threshold: float = 0.01
    near_boundary_threshold: float = 0.01
    precompute_workers: int | None = None

    # Coarse country bounds used to reject foreign coordinates at the HTTP layer
    country_min_lat: float = 13.0
    country_max_lat: float = 14.5
    country_min_lon: float = -90.2
    country_max_lon: float = -87.5

    model_config = {"env_prefix": "", "case_sensitive": False}


settings = Settings()
