"""Application defaults — lives in L4, not domain."""

from __future__ import annotations

import copy

from pocket_whisper.l1_entities.config import AppConfig
from pocket_whisper.l3_interface_adapters.gateways.yaml_config_loader import deep_merge

APP_CONFIG_DEFAULTS: dict = {
    'engine': {
        'backend': 'reference',
        'model': 'whisper-tiny.tflite',
        'vocab': None,  # None → filters_vocab_{multilingual,en}.bin beside the model
        'multilingual': True,
        'threads': None,
    },
    'recording': {
        'chunk_duration': 3.0,
        'max_duration': 60.0,
        'block_size': 1024,
        'wav_path': None,
    },
    'output': {
        'directory': './output',
    },
}

VOCAB_MULTILINGUAL = 'filters_vocab_multilingual.bin'
VOCAB_ENGLISH = 'filters_vocab_en.bin'


def build_app_config(raw: dict) -> AppConfig:
    """Merge *raw* user overrides on top of defaults, then validate."""
    merged = copy.deepcopy(APP_CONFIG_DEFAULTS)
    deep_merge(merged, raw)
    return AppConfig.model_validate(merged)
