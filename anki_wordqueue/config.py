"""Configuration and runtime constants."""

import os
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()

# API Keys
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")

# Model Configuration
MODEL_NAME = os.getenv("MODEL_NAME", "gpt-5-mini")
OPENAI_TIMEOUT = float(os.getenv("OPENAI_TIMEOUT", "60"))

# Image Configuration
IMAGE_MODEL = os.getenv("IMAGE_MODEL", "gpt-image-1")  # "gpt-image-1" or "dall-e-3"
IMAGE_SIZE = os.getenv("IMAGE_SIZE", "1024x1024")  # flashcards always get a square image
IMAGE_QUALITY = os.getenv("IMAGE_QUALITY", "medium")
IMAGE_DOWNLOAD_TIMEOUT = float(os.getenv("IMAGE_DOWNLOAD_TIMEOUT", "10"))

# AnkiConnect Configuration
ANKI_CONNECT_URL = os.getenv("ANKI_CONNECT_URL", "http://localhost:8765")
ANKI_DECK_NAME = os.getenv("ANKI_DECK_NAME", "GRE Vocabulary")
ANKI_MODEL_NAME = os.getenv("ANKI_MODEL_NAME", "Basic")
ANKI_TAGS = [t.strip() for t in os.getenv("ANKI_TAGS", "gre,vocabulary,ai-generated").split(",") if t.strip()]
ANKI_TIMEOUT = float(os.getenv("ANKI_TIMEOUT", "8"))
ANKI_MEDIA_PREFIX = os.getenv("ANKI_MEDIA_PREFIX", "gre")

# Queue Configuration
MAX_CONCURRENT_GENERATIONS = int(os.getenv("MAX_CONCURRENT_GENERATIONS", "3"))
QUEUE_COOLDOWN = int(os.getenv("QUEUE_COOLDOWN_MS", "100")) / 1000

# Export Configuration
EXPORT_CARD_DELAY = int(os.getenv("EXPORT_CARD_DELAY_MS", "200")) / 1000
REQUIRE_APPROVAL = os.getenv("REQUIRE_APPROVAL", "0") == "1"

# File paths
WORD_QUEUE_FILE = Path(os.getenv("WORD_QUEUE_FILE", "word-queue.json"))
PROMPT_CONFIG_FILE = Path(os.getenv("PROMPT_CONFIG_FILE", ".config.txt"))

# Testing Configuration
LIVE_TESTING = os.getenv("WORDQUEUE_LIVE", "0") == "1"
