"""Shared path constants for configuration and recordings."""

from __future__ import annotations

from platformdirs import user_config_path, user_data_path

CONFIG_DIR = user_config_path('pocket-whisper')
DATA_DIR = user_data_path('pocket-whisper')

DEFAULT_CONFIG_PATHS = [
    CONFIG_DIR / 'config.yaml',
    CONFIG_DIR / 'config.yml',
]

RECORDING_FILE = 'recording.wav'
