from pydantic_settings import BaseSettings, SettingsConfigDict
class Settings(BaseSettings):
    APP_ENV: str = "dev"
    APP_SECRET: str
    DB_URL: str = "sqlite:///./drinkpos.db"
    JWT_ISS: str = "drinkpos"
    JWT_EXP_MIN: int = 12*60
    SHOP_TZ: str = "Asia/Bangkok"
    LOG_LEVEL: str = "INFO"
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")
settings = Settings()
