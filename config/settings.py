from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
    )

    # Economy
    USER_START_BALANCE: float = 1000.0
    MARKET_CREATION_COST: float = 50.0  # also the seed liquidity of each reserve

    # Tolerance for float sign checks; anything above -epsilon counts as zero
    BALANCE_EPSILON: float = 1e-9

    # App
    APP_NAME: str = "Play Money Prediction Market"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"


settings = Settings()
