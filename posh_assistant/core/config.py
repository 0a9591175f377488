import os
from typing import Optional
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings and configuration"""

    # ============ APP SETTINGS ============
    APP_NAME: str = "POSH Assistant"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = os.getenv("DEBUG", "False").lower() == "true"

    # ============ SERVER SETTINGS ============
    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = int(os.getenv("PORT", 8000))
    RELOAD: bool = os.getenv("RELOAD", "False").lower() == "true"

    # ============ CORS SETTINGS ============
    ALLOWED_ORIGINS: list = os.getenv("ALLOWED_ORIGINS", "*").split(",")

    # ============ GROQ SETTINGS (chat + sentiment) ============
    # Groq exposes an OpenAI-compatible chat completions API
    GROQ_API_KEY: str = os.getenv("GROQ_API_KEY", "")
    GROQ_BASE_URL: str = os.getenv("GROQ_BASE_URL", "https://api.groq.com/openai/v1")
    GROQ_CHAT_MODEL: str = os.getenv("GROQ_CHAT_MODEL", "llama-3.3-70b-versatile")
    GROQ_SENTIMENT_MODEL: str = os.getenv("GROQ_SENTIMENT_MODEL", "llama-3.1-8b-instant")

    # Chat sampling parameters
    CHAT_TEMPERATURE: float = 0.7
    CHAT_MAX_TOKENS: int = 1024

    # Sentiment classification
    SENTIMENT_MIN_CHARS: int = 20
    SENTIMENT_MAX_INPUT_CHARS: int = 300
    SENTIMENT_MAX_TOKENS: int = 10

    # ============ GEMINI SETTINGS (embeddings + fallback answers) ============
    GEMINI_API_KEY: str = os.getenv("GEMINI_API_KEY", "")
    GEMINI_BASE_URL: str = os.getenv(
        "GEMINI_BASE_URL", "https://generativelanguage.googleapis.com/v1beta"
    )
    GEMINI_MODEL: str = os.getenv("GEMINI_MODEL", "gemini-1.5-flash")
    EMBEDDING_MODEL: str = os.getenv("EMBEDDING_MODEL", "text-embedding-004")

    # ============ VECTOR STORE SETTINGS (Supabase pgvector) ============
    SUPABASE_URL: Optional[str] = os.getenv("SUPABASE_URL", None)
    SUPABASE_KEY: Optional[str] = os.getenv("SUPABASE_KEY", None)
    SUPABASE_CHUNKS_TABLE: str = "posh_act_chunks"
    SUPABASE_MATCH_FUNCTION: str = "match_posh_chunks"

    # ============ RAG SETTINGS ============
    RETRIEVAL_MATCH_COUNT: int = int(os.getenv("RETRIEVAL_MATCH_COUNT", 4))
    SIMILARITY_THRESHOLD: float = float(os.getenv("SIMILARITY_THRESHOLD", 0.75))
    HISTORY_WINDOW: int = 10

    # Policy document ingestion
    CHUNK_SIZE: int = int(os.getenv("CHUNK_SIZE", 500))
    SUPPORTED_FILE_TYPES: list = [".pdf", ".txt", ".docx", ".md"]
    MAX_FILE_SIZE_MB: int = int(os.getenv("MAX_FILE_SIZE_MB", 20))

    # ============ NETWORK SETTINGS ============
    HTTP_TIMEOUT_SECONDS: float = float(os.getenv("HTTP_TIMEOUT_SECONDS", 60))
    HTTP_CONNECT_TIMEOUT_SECONDS: float = float(os.getenv("HTTP_CONNECT_TIMEOUT_SECONDS", 10))

    # ============ LOGGING SETTINGS ============
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    LOG_FILE: Optional[str] = os.getenv("LOG_FILE", None)

    # ============ SECURITY SETTINGS ============
    MAX_MESSAGE_CHARS: int = 10000
    ENABLE_PROMPT_INJECTION_GUARD: bool = True

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"


# Instantiate settings
settings = Settings()
