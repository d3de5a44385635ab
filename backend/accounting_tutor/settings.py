from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

class Settings(BaseSettings):
	gemini_api_key: str | None = Field(default=None, validation_alias="GEMINI_API_KEY")
	# Provider can be "vertex" (Vertex AI Express) or "ai_studio" (Generative Language API)
	gemini_provider: str = Field(default="ai_studio", validation_alias="GEMINI_PROVIDER")
	# Fast model for lessons and the daily challenge
	gemini_model: str = Field(default="gemini-2.5-flash", validation_alias="GEMINI_MODEL")
	# Stronger model for solving, quizzes, summaries and formulas
	gemini_model_pro: str = Field(default="gemini-2.5-pro", validation_alias="GEMINI_MODEL_PRO")
	gemini_model_tts: str = Field(default="gemini-2.5-flash-preview-tts", validation_alias="GEMINI_MODEL_TTS")
	gemini_tts_voice: str = Field(default="Kore", validation_alias="GEMINI_TTS_VOICE")
	gemini_timeout_seconds: float = Field(default=30.0, validation_alias="GEMINI_TIMEOUT_SECONDS")
	# Vertex configuration
	vertex_region: str = Field(default="us-central1", validation_alias="GEMINI_VERTEX_REGION")
	vertex_project: str | None = Field(default=None, validation_alias="GEMINI_VERTEX_PROJECT")

	# OpenRouter fallback configuration (optional, free-text features only)
	openrouter_api_key: str | None = Field(default=None, validation_alias="OPENROUTER_API_KEY")
	openrouter_model: str = Field(default="x-ai/grok-4-fast:free", validation_alias="OPENROUTER_MODEL")
	openrouter_base_url: str = Field(default="https://openrouter.ai/api/v1/chat/completions", validation_alias="OPENROUTER_BASE_URL")
	openrouter_referer: str = Field(default="https://localhost", validation_alias="OPENROUTER_HTTP_REFERER")
	openrouter_title: str = Field(default="Accounting Tutor", validation_alias="OPENROUTER_TITLE")

	# Auth configuration
	jwt_secret_key: str = Field(default="change-me", validation_alias="JWT_SECRET_KEY")
	jwt_algorithm: str = Field(default="HS256", validation_alias="JWT_ALGORITHM")
	access_token_expire_minutes: int = Field(default=120, validation_alias="ACCESS_TOKEN_EXPIRE_MINUTES")
	admin_username: str = Field(default="admin", validation_alias="ADMIN_USERNAME")
	admin_password: str | None = Field(default=None, validation_alias="ADMIN_PASSWORD")
	login_attempt_limit: int = Field(default=100, validation_alias="LOGIN_ATTEMPT_LIMIT")

	# "ar" or "en"; used until a user stores a preference
	default_language: str = Field(default="ar", validation_alias="DEFAULT_LANGUAGE")

	# Server-side read-aloud through the local sound card (needs the "audio" extra)
	audio_output_enabled: bool = Field(default=False, validation_alias="AUDIO_OUTPUT_ENABLED")
	audio_output_device: str | None = Field(default=None, validation_alias="AUDIO_OUTPUT_DEVICE")

	# Database
	database_url: str | None = Field(default=None, validation_alias="DATABASE_URL")

	log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

	# pydantic-settings v2 style config
	model_config = SettingsConfigDict(env_file=".env", extra="ignore")

settings = Settings()
