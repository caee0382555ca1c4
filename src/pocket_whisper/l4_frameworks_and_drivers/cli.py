"""CLI entry point for pocket-whisper."""

from __future__ import annotations

import re
import sys
import time
from datetime import datetime
from pathlib import Path

import click

from pocket_whisper import __version__
from pocket_whisper.l1_entities.transcription_action import EngineBackend


def _make_session_dir(base_dir: Path, label: str | None) -> Path:
    """Create a timestamped session subdirectory under base_dir."""
    stamp = datetime.now().strftime('%Y-%m-%d_%H%M%S')
    if label:
        safe_label = re.sub(r'[^\w\-]', '_', label)
        name = f'{stamp}_{safe_label}'
    else:
        name = stamp
    session_dir = base_dir / name
    session_dir.mkdir(parents=True, exist_ok=True)
    return session_dir


def _build_overrides(model, vocab, backend, multilingual, threads, output_dir) -> dict:
    engine: dict = {}
    if model:
        engine['model'] = model
    if vocab:
        engine['vocab'] = vocab
    if backend:
        engine['backend'] = backend
    if multilingual is not None:
        engine['multilingual'] = multilingual
    if threads:
        engine['threads'] = threads

    overrides: dict = {}
    if engine:
        overrides['engine'] = engine
    if output_dir:
        overrides['output'] = {'directory': output_dir}
    return overrides


def _download_progress_printer():
    """Return an on_progress callback that echoes each new whole percentage to stderr."""
    last = -1

    def _report(percent: int) -> None:
        nonlocal last
        if percent == last:
            return
        last = percent
        click.echo(f'\rDownloading model... {percent}%', err=True, nl=percent >= 100)

    return _report


@click.group()
@click.option(
    '-c',
    '--config',
    'config_path',
    default=None,
    type=click.Path(exists=True),
    help='Path to YAML config file.',
)
@click.option('-m', '--model', default=None, help='Model file (.tflite, .bin) or a whisper.cpp model name.')
@click.option('--vocab', default=None, type=click.Path(), help='Filters/vocab blob for the reference backend.')
@click.option(
    '-b',
    '--backend',
    default=None,
    type=click.Choice([b.value for b in EngineBackend]),
    help='Inference engine variant.',
)
@click.option('--multilingual/--english-only', default=None, help='Vocabulary flavour of the model.')
@click.option('-t', '--threads', default=None, type=click.IntRange(min=1), help='Worker threads (default: all cores).')
@click.option(
    '-o',
    '--output-dir',
    default=None,
    type=click.Path(),
    help='Base output directory (session subfolder created automatically).',
)
@click.option('-l', '--label', default=None, help='Session label appended to the timestamp folder.')
@click.option('-v', '--verbose', is_flag=True, help='Also print debug logs to stderr.')
@click.version_option(version=__version__)
@click.pass_context
def cli(ctx, config_path, model, vocab, backend, multilingual, threads, output_dir, label, verbose):
    """pocket-whisper -- on-device Whisper transcription of files and the microphone."""
    from pocket_whisper.l3_interface_adapters.gateways.yaml_config_loader import (  # noqa: PLC0415 -- deferred: yaml stack not loaded on --help
        YamlConfigLoader,
    )
    from pocket_whisper.l4_frameworks_and_drivers.config import (  # noqa: PLC0415 -- deferred: not needed for --help
        build_app_config,
    )
    from pocket_whisper.l4_frameworks_and_drivers.logging_setup import (  # noqa: PLC0415 -- deferred: not needed for --help
        setup_console_logging,
    )

    overrides = _build_overrides(model, vocab, backend, multilingual, threads, output_dir)
    try:
        raw = YamlConfigLoader().load_raw(config_path, overrides=overrides or None)
        config = build_app_config(raw)
    except FileNotFoundError as e:
        click.echo(f'Error: {e}', err=True)
        sys.exit(1)
    except ValueError as e:
        click.echo(f'Error: invalid configuration: {e}', err=True)
        sys.exit(1)

    if verbose:
        setup_console_logging()
    ctx.obj = {'config': config, 'label': label}


def _open_container(obj: dict, listener):
    from pocket_whisper.l4_frameworks_and_drivers.container import (  # noqa: PLC0415 -- deferred: engine stack not loaded on --help
        DependencyContainer,
    )
    from pocket_whisper.l4_frameworks_and_drivers.logging_setup import (  # noqa: PLC0415 -- deferred: not needed for --help
        setup_file_logging,
    )

    config = obj['config']
    out_dir = _make_session_dir(Path(config.output.directory), obj['label'])
    setup_file_logging(out_dir)

    container = DependencyContainer(
        config, out_dir, listener=listener, on_download_progress=_download_progress_printer()
    )
    if not container.load_engine():
        click.echo(f'Error: cannot load model {config.engine.model!r} (see {out_dir / "pw_debug.log"})', err=True)
        container.close()
        sys.exit(1)
    return container


@cli.command()
@click.argument('audio_file', type=click.Path(exists=True, dir_okay=False))
@click.pass_obj
def transcribe(obj, audio_file):
    """Transcribe the first 30 seconds of AUDIO_FILE."""
    from pocket_whisper.l4_frameworks_and_drivers.console_listener import (  # noqa: PLC0415 -- deferred: not needed for --help
        ConsoleListener,
    )

    listener = ConsoleListener(show_partials=False)
    container = _open_container(obj, listener)
    try:
        container.scheduler.start_workers()
        container.scheduler.submit_file_request(Path(audio_file))
        container.scheduler.wait_until_idle()
    finally:
        container.close()

    text = listener.last_result
    if text is None:
        sys.exit(1)
    click.echo(text)


@cli.command()
@click.option(
    '-s',
    '--seconds',
    default=None,
    type=click.FloatRange(min=0, min_open=True),
    help='Stop after N seconds (default: Ctrl-C or the recording ceiling).',
)
@click.pass_obj
def record(obj, seconds):
    """Record from the microphone with live transcription, then transcribe the saved WAV."""
    from pocket_whisper.l4_frameworks_and_drivers.console_listener import (  # noqa: PLC0415 -- deferred: not needed for --help
        ConsoleListener,
    )

    listener = ConsoleListener(show_partials=True)
    container = _open_container(obj, listener)
    recorder = container.recorder
    try:
        container.scheduler.start_workers()
        recorder.start()
        deadline = time.monotonic() + seconds if seconds else None
        try:
            while recorder.is_in_progress:
                if deadline is not None and time.monotonic() >= deadline:
                    break
                time.sleep(0.1)
        except KeyboardInterrupt:
            click.echo('', err=True)
        recorder.stop()

        wav_path = recorder.wav_path
        if not wav_path.exists():
            sys.exit(1)
        click.echo(f'Saved recording: {wav_path}', err=True)
        final = container.scheduler.transcribe_file_now(wav_path)
        if final:
            click.echo(final)
    finally:
        container.close()
