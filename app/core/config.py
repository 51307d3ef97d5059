# app/core/config.py
from functools import lru_cache

from pydantic import BaseModel
from pydantic_settings import BaseSettings, SettingsConfigDict


class TruckType(BaseModel):
    """
    One entry of the vehicle catalog offered when scheduling a delivery.
    """

    code: str
    label: str


# Default capacity classes offered in the scheduling step.
DEFAULT_TRUCK_TYPES: list[TruckType] = [
    TruckType(code="tipper_light", label="Tipper Truck Light (3-6 tonnes)"),
    TruckType(code="tipper_medium", label="Tipper Truck Medium (6-11 tonnes)"),
    TruckType(code="tipper_heavy", label="Tipper Truck Heavy (11-14 tonnes)"),
    TruckType(code="light_rigid", label="Light Rigid Truck (3.5 tonnes)"),
    TruckType(code="medium_rigid", label="Medium Rigid Trucks (7 tonnes)"),
    TruckType(code="heavy_rigid", label="Heavy Rigid Trucks (16-49 tonnes)"),
    TruckType(code="mini_body", label="Mini Body Truck (8 tonnes)"),
    TruckType(code="body_truck", label="Body Truck (12 tonnes)"),
    TruckType(code="eight_wheeler", label="Eight-Wheeler Body Truck (16 tonnes)"),
    TruckType(code="semi", label="Semi (28 tonnes)"),
    TruckType(code="truck_dog", label="Truck and Dog (38 tonnes)"),
]


class SchedulingConfig(BaseModel):
    """
    Defaults consumed by the allocation engine.

    Passed explicitly into ledgers and the schedule grouper so the engine
    can be reused across markets without touching module constants.
    """

    default_delivery_time: str | None = "08:00"
    default_truck_type: str | None = "tipper_light"
    truck_types: list[TruckType] = DEFAULT_TRUCK_TYPES
    date_format: str = "%A, %B %d, %Y"

    def truck_codes(self) -> set[str]:
        return {t.code for t in self.truck_types}

    def truck_label(self, code: str | None) -> str | None:
        for t in self.truck_types:
            if t.code == code:
                return t.label
        return None


class FieldRequirements(BaseModel):
    """
    Which slot fields the current scheduling flow exposes.

    The delivery date is always required.
    """

    require_time: bool = True
    require_vehicle_type: bool = True


class Settings(BaseSettings):
    """
    Centralized application settings loaded from environment.

    Required env vars (.env):
      - JWT_SECRET (secret used to verify client access tokens)

    Optional:
      - DATABASE_URL (defaults to a local SQLite file)
      - DEFAULT_DELIVERY_TIME / DEFAULT_TRUCK_TYPE (new slot defaults)
      - REQUIRE_DELIVERY_TIME / REQUIRE_TRUCK_TYPE (checkout field rules)
    """

    PROJECT_NAME: str = "Materials Ordering API"
    API_V1_STR: str = "/api/v1"

    DATABASE_URL: str = "sqlite:///./materials_ordering.db"

    # JWT verification (backend-side)
    JWT_SECRET: str
    JWT_ALG: str = "HS256"

    # Scheduling defaults
    DEFAULT_DELIVERY_TIME: str | None = "08:00"
    DEFAULT_TRUCK_TYPE: str | None = "tipper_light"
    SCHEDULE_DATE_FORMAT: str = "%A, %B %d, %Y"

    # Which slot fields the scheduling step exposes (and therefore requires)
    REQUIRE_DELIVERY_TIME: bool = True
    REQUIRE_TRUCK_TYPE: bool = True

    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:5173",
    ]

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    """
    Cached settings loader.
    Ensures we don't re-parse .env on every import / request.
    """
    return Settings()


def get_scheduling_config() -> SchedulingConfig:
    """
    Build the engine configuration from the current settings.
    """
    settings = get_settings()
    return SchedulingConfig(
        default_delivery_time=settings.DEFAULT_DELIVERY_TIME,
        default_truck_type=settings.DEFAULT_TRUCK_TYPE,
        date_format=settings.SCHEDULE_DATE_FORMAT,
    )


def get_field_requirements() -> FieldRequirements:
    settings = get_settings()
    return FieldRequirements(
        require_time=settings.REQUIRE_DELIVERY_TIME,
        require_vehicle_type=settings.REQUIRE_TRUCK_TYPE,
    )
