"""Gateway: HuggingFace model resolver — implements ModelResolver port."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

from huggingface_hub import hf_hub_download
from pywhispercpp.constants import MODELS_DIR

from pocket_whisper.l1_entities.errors import ModelResolutionError

WHISPER_CPP_REPO = 'ggerganov/whisper.cpp'
WHISPER_CPP_MODELS = {
    'tiny': 'ggml-tiny.bin',
    'tiny.en': 'ggml-tiny.en.bin',
    'base': 'ggml-base.bin',
    'base.en': 'ggml-base.en.bin',
    'small': 'ggml-small.bin',
    'small.en': 'ggml-small.en.bin',
    'small-q8_0': 'ggml-small-q8_0.bin',
    'medium-q5_0': 'ggml-medium-q5_0.bin',
    'large-v3-turbo-q8_0': 'ggml-large-v3-turbo-q8_0.bin',
}


def _make_progress_class(callback: Callable[[int], None]) -> type:
    """Create a tqdm-compatible class that reports download progress via *callback*."""

    class _ProgressReporter:
        def __init__(self, *args, **kwargs):
            self.total: int = kwargs.get('total', 0) or 0
            self.n: int = 0
            if self.total > 0:
                callback(0)

        def update(self, n: int = 1) -> None:
            self.n += n
            if self.total > 0:
                callback(min(int(self.n / self.total * 100), 100))

        def close(self) -> None:
            pass

        def set_description(self, *a, **kw) -> None:
            pass

        def set_description_str(self, *a, **kw) -> None:
            pass

        def refresh(self) -> None:
            pass

        def __enter__(self):
            return self

        def __exit__(self, *args):
            self.close()

    return _ProgressReporter


class HfModelResolver:
    """Resolves whisper.cpp model names to local file paths, downloading from HF if needed."""

    def __init__(self, on_progress: Callable[[int], None] | None = None) -> None:
        self._on_progress = on_progress

    def resolve(self, model_name: str) -> str:
        path = Path(model_name).expanduser()
        if path.is_absolute() or path.suffix in {'.bin', '.tflite'}:
            if not path.exists():
                raise ModelResolutionError(f'Model file not found: {model_name}')
            return str(path)

        if model_name in WHISPER_CPP_MODELS:
            tqdm_class = _make_progress_class(self._on_progress) if self._on_progress else None
            return _download_whisper_cpp(model_name, tqdm_class=tqdm_class)

        raise ModelResolutionError(
            f'Unknown model {model_name!r}; use a file path or one of: {", ".join(WHISPER_CPP_MODELS)}'
        )


def _download_whisper_cpp(name: str, *, tqdm_class: type | None = None) -> str:
    filename = WHISPER_CPP_MODELS[name]
    cache_dir = Path(MODELS_DIR) / 'whisper-cpp'
    cache_dir.mkdir(parents=True, exist_ok=True)
    local_path = cache_dir / filename
    if local_path.exists():
        return str(local_path)
    kwargs: dict = dict(repo_id=WHISPER_CPP_REPO, filename=filename, local_dir=cache_dir)
    if tqdm_class is not None:
        kwargs['tqdm_class'] = tqdm_class
    try:
        return hf_hub_download(**kwargs)
    except Exception as exc:
        raise ModelResolutionError(f'Failed to download {name}: {exc}') from exc
