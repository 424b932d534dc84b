"""Configuration for Project Forge."""

import os
from pathlib import Path
from dotenv import load_dotenv

load_dotenv(dotenv_path=Path(__file__).resolve().parents[1] / ".env")


def _env_bool(name: str, default: bool) -> bool:
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in ("1", "true", "yes", "on")


# Completion endpoint (OpenAI-compatible chat completions)
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
OPENAI_API_URL = os.getenv("OPENAI_API_URL", "https://api.openai.com/v1/chat/completions")
COMPLETION_MODEL = os.getenv("COMPLETION_MODEL", "gpt-4o")
COMPLETION_TEMPERATURE = float(os.getenv("COMPLETION_TEMPERATURE", "0.8"))
COMPLETION_MAX_TOKENS = int(os.getenv("COMPLETION_MAX_TOKENS", "4000"))
COMPLETION_TIMEOUT = float(os.getenv("COMPLETION_TIMEOUT", "120"))

# Web search (Serper / Google Search)
SERPER_API_KEY = os.getenv("SERPER_API_KEY")
SERPER_API_URL = os.getenv("SERPER_API_URL", "https://google.serper.dev/search")
SEARCH_NUM_RESULTS = 10
SEARCH_RESULT_LIMIT = 5
SEARCH_TIMEOUT = float(os.getenv("SEARCH_TIMEOUT", "45"))

# Code hosting
GITHUB_TOKEN = os.getenv("GITHUB_TOKEN")
GITHUB_API_URL = os.getenv("GITHUB_API_URL", "https://api.github.com")
GITHUB_REPO_PRIVATE = _env_bool("GITHUB_REPO_PRIVATE", True)
GITHUB_INIT_DELAY = 2.0

# Workspace / documentation
NOTION_API_KEY = os.getenv("NOTION_API_KEY")
NOTION_PARENT_PAGE_ID = os.getenv("NOTION_PARENT_PAGE_ID")
NOTION_API_URL = os.getenv("NOTION_API_URL", "https://api.notion.com/v1")
NOTION_VERSION = "2022-06-28"
NOTION_BLOCK_CHUNK_SIZE = 100

# Validation gate: mean criterion score below this triggers enhancement
VALIDATION_PASS_SCORE = 75

# Knowledge base
KNOWLEDGE_MAX_ITEMS = int(os.getenv("KNOWLEDGE_MAX_ITEMS", "500"))
KNOWLEDGE_FILE = os.getenv("KNOWLEDGE_FILE")
KNOWLEDGE_LEARNING_ENABLED = _env_bool("KNOWLEDGE_LEARNING_ENABLED", True)
KNOWLEDGE_RELEVANT_LIMIT = 10

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Browser origins allowed to call the API
CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "http://localhost:5173,http://localhost:3000").split(",")
    if origin.strip()
]
