"""
Rhythm Chart Generator - Configuration
All settings loaded from environment variables with sensible defaults.

The generator itself is a pure library call; these values only provide
defaults for callers that do not pass explicit parameters (the HTTP API
and the command-line script) plus a couple of tuning switches for the
lane-placement policy.
"""

import os

from dotenv import load_dotenv

# Load environment variables from .env file
_ = load_dotenv()

# ---------------------------------------------------------------------------
# Application
# ---------------------------------------------------------------------------
APP_HOST = os.getenv("APP_HOST", "0.0.0.0")
APP_PORT = int(os.getenv("APP_PORT", "8000"))
APP_ENV = os.getenv("APP_ENV", "development")
APP_VERSION = os.getenv("APP_VERSION", "1.0.0")
DEBUG = os.getenv("DEBUG", "true").lower() == "true"

# ---------------------------------------------------------------------------
# Logging (stdout only)
# ---------------------------------------------------------------------------
LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")

# ---------------------------------------------------------------------------
# Generation defaults
# ---------------------------------------------------------------------------
SUPPORTED_LANE_COUNTS = {4, 6}
SUPPORTED_PLAY_STYLES = {"THUMB", "MULTI"}

DEFAULT_DIFFICULTY = float(os.getenv("DEFAULT_DIFFICULTY", "10"))
DEFAULT_LANE_COUNT = int(os.getenv("DEFAULT_LANE_COUNT", "4"))
DEFAULT_PLAY_STYLE = os.getenv("DEFAULT_PLAY_STYLE", "THUMB").upper()

# Fallback structure used when no section analysis is available
DEFAULT_BPM = float(os.getenv("DEFAULT_BPM", "120"))
DEFAULT_SECTION_INTENSITY = float(os.getenv("DEFAULT_SECTION_INTENSITY", "0.8"))
DEFAULT_SECTION_STYLE = os.getenv("DEFAULT_SECTION_STYLE", "stream")

# Seed for the per-run random generator.  Unset → fresh entropy each run.
_seed_raw = os.getenv("GENERATOR_SEED", "").strip()
GENERATOR_SEED = int(_seed_raw) if _seed_raw else None

# ---------------------------------------------------------------------------
# Lane-placement policy
# ---------------------------------------------------------------------------
# Section styles in which fast same-lane repeats (jacks) are permitted.
JACK_FRIENDLY_STYLES = frozenset(
    s.strip().lower()
    for s in os.getenv("JACK_FRIENDLY_STYLES", "simple").split(",")
    if s.strip()
)

# When true, a chord whose best ergonomic cost exceeds the difficulty's
# allowed cost is skipped instead of placed anyway.
ENFORCE_COST_CEILING = os.getenv("ENFORCE_COST_CEILING", "false").lower() == "true"

# ---------------------------------------------------------------------------
# API limits
# ---------------------------------------------------------------------------
MAX_ONSETS_PER_REQUEST = int(os.getenv("MAX_ONSETS_PER_REQUEST", "50000"))
# Longest song (seconds) a generate request may describe
MAX_SONG_DURATION = float(os.getenv("MAX_SONG_DURATION", "3600"))
