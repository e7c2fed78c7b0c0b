from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # App settings
    PROJECT_NAME: str = "Expenso"
    API_PREFIX: str = "/api"
    DEBUG: bool = Field(default=False)

    # DynamoDB
    DYNAMO_REGION: str = Field(default="eu-west-1")
    DYNAMO_TRANSACTIONS_TABLE: str = Field(
        default="expenso-transactions",
        validation_alias=AliasChoices("DYNAMO_TABLE_TRANSACTIONS", "DYNAMO_TRANSACTIONS_TABLE"),
    )

    # Gemini
    GEMINI_API_KEY: str = Field(default="")
    ADVICE_MODEL: str = "gemini-3.1-pro-preview"
    FAST_MODEL: str = "gemini-3-flash-preview"

    # Advisory retry policy
    ADVICE_MAX_RETRIES: int = 3
    FORECAST_MAX_RETRIES: int = 3
    INSIGHT_MAX_RETRIES: int = 1
    RETRY_INITIAL_DELAY_SECONDS: float = 1.0
    ADVISOR_CALL_BUDGET_SECONDS: float = 15.0

    # Pacing
    WEEK_START: str = "sunday"

    # Scheduler
    SCHEDULER_ENABLED: bool = Field(default=True)
    PACING_CHECK_INTERVAL_MINUTES: int = 60
    REMINDER_HOUR: int = 20  # local hour after which the daily reminder may fire

    # SNS push (native notifications)
    SNS_REGION: str = Field(default="eu-west-1")
    SNS_TOPIC_ARN: str = Field(default="")

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )


settings = Settings()
