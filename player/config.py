import os
from pathlib import Path

from dotenv import load_dotenv

from shared.constants import (
    DEFAULT_HISTORY_PATH,
    DEFAULT_LOG_LEVEL,
    DEFAULT_NETWORK_TIMEOUT,
    POSITION_SAVE_DELAY_SEC,
)

load_dotenv()

# App Configuration
APP_NAME = "Soundstream"
VERSION = "1.0.0"

# History API (leave the URL empty to keep history in a local file)
API_BASE_URL = os.getenv("SOUNDSTREAM_API_URL", "")
API_TOKEN = os.getenv("SOUNDSTREAM_TOKEN")
NETWORK_TIMEOUT = float(os.getenv("SOUNDSTREAM_TIMEOUT", DEFAULT_NETWORK_TIMEOUT))

# Local history
HISTORY_FILE = Path(os.getenv("SOUNDSTREAM_HISTORY_FILE", DEFAULT_HISTORY_PATH)).expanduser()

# Playback
SAVE_DELAY_SEC = float(os.getenv("SOUNDSTREAM_SAVE_DELAY", POSITION_SAVE_DELAY_SEC))

# Logging
LOG_LEVEL = os.getenv("SOUNDSTREAM_LOG_LEVEL", DEFAULT_LOG_LEVEL).upper()
