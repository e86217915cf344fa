"""
Shared constants used across the player.
"""

# Playback timing
POSITION_SAVE_DELAY_SEC = 5.0  # quiet period after the last time update before saving
RESTART_THRESHOLD_SEC = 3.0  # "previous" restarts the track past this point

# Volume (0.0 - 1.0)
DEFAULT_VOLUME = 1.0
MIN_VOLUME = 0.0
MAX_VOLUME = 1.0

# Background work
HISTORY_WORKERS = 2

# History API
HISTORY_ENDPOINT = "/api/history"
RESUME_ENDPOINT = HISTORY_ENDPOINT + "/resume/{track_id}"
DEFAULT_HISTORY_LIMIT = 50

# Network Settings
DEFAULT_NETWORK_TIMEOUT = 30  # seconds
DEFAULT_HTTP_RETRIES = 2

# Configuration paths
DEFAULT_CONFIG_DIR = "~/.config/soundstream"
HISTORY_FILENAME = "history.json"
DEFAULT_HISTORY_PATH = DEFAULT_CONFIG_DIR + "/" + HISTORY_FILENAME

# Logging
DEFAULT_LOG_LEVEL = "WARNING"
