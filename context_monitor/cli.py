"""
Command Line Interface Module

Provides CLI commands for simulating, replaying and inspecting the
context classifier.
"""

import json
import sys
import time
from pathlib import Path

import click
import yaml

from .config import ConfigManager
from .context_detector import ContextClassifier
from .errors import ContextMonitorError
from .logging_setup import get_logger, setup_logging
from .models import ActivityState, UIMode
from .presentation import VOICE_HINT, describe, priority_tasks, quick_actions, ui_mode_for
from .providers import SimulatedLocationSource, SimulatedSensorSource
from .replay import load_recording, replay as replay_recording, summarize_timeline
from .rules import threshold_table_as_dict
from .session import ContextSession
from .synthetic import feed_trace, generate_trace


DEFAULT_CONFIG_FILE = 'config.yaml'
CONFIG_COMMANDS = ('config-set', 'config-get')
ACTIVITY_CHOICES = click.Choice([activity.value for activity in ActivityState], case_sensitive=False)


@click.group()
@click.option('--config', '-c', default=None,
              help='Path to configuration file (defaults to ./config.yaml when present)')
@click.option('--verbose', '-v', is_flag=True,
              help='Enable verbose logging')
@click.pass_context
def cli(ctx, config, verbose):
    """Context Monitor - activity detection from motion sensors."""
    ctx.ensure_object(dict)

    if config is None and Path(DEFAULT_CONFIG_FILE).exists():
        config = DEFAULT_CONFIG_FILE

    try:
        config_manager = ConfigManager(config)
        ctx.obj['config'] = config_manager

        log_level = 'DEBUG' if verbose else config_manager.get('logging.level', 'INFO')
        log_file = config_manager.get_log_file_path()
        setup_logging(
            str(log_file) if log_file else None,
            log_level,
            config_manager.get('logging.max_log_size_mb', 10),
            config_manager.get('logging.backup_count', 3)
        )
        ctx.obj['logger'] = get_logger('cli')

        config_manager.ensure_directories()

        # config-set and config-get stay usable for repairing a bad file
        if ctx.invoked_subcommand not in CONFIG_COMMANDS and not config_manager.validate_classifier_config():
            click.echo("Error loading configuration: invalid classifier settings (see log)", err=True)
            sys.exit(1)

    except ContextMonitorError as e:
        click.echo(f"Error loading configuration: {e}", err=True)
        sys.exit(1)


def _echo_context(classifier: ContextClassifier) -> None:
    snapshot = classifier.get_current_context()
    features = classifier.get_features()

    click.echo(f"Activity: {describe(snapshot)}")
    click.echo(f"UI mode: {ui_mode_for(snapshot.activity).value}")
    if features is not None:
        click.echo(f"Features: mean={features.mean:.3f} variance={features.variance:.3f} "
                   f"frequency={features.frequency:.2f} ({features.sample_count} samples)")
    click.echo(f"Suggested actions: {', '.join(priority_tasks(snapshot))}")
    actions = quick_actions(snapshot.activity)
    if actions:
        click.echo(f"Quick actions: {', '.join(actions)}")


@cli.command()
@click.option('--activity', '-a', type=ACTIVITY_CHOICES, default='WALKING',
              help='Activity the synthetic trace should resemble')
@click.option('--seconds', '-s', type=float, default=10.0,
              help='Length of the trace in seconds')
@click.option('--speed', type=float, default=None,
              help='Location speed in m/s (overrides the activity profile)')
@click.option('--noise', type=float, default=0.0,
              help='Gaussian noise added to the magnitude')
@click.option('--seed', type=int, default=42, help='Random seed for the noise')
@click.pass_context
def simulate(ctx, activity, seconds, speed, noise, seed):
    """Classify a synthetic sensor trace."""
    config = ctx.obj['config']
    logger = ctx.obj['logger']

    try:
        classifier = ContextClassifier.from_config(config)
        classifier.initialize()

        trace = generate_trace(
            ActivityState(activity.upper()),
            seconds=seconds,
            sample_rate_hz=float(config.get('classifier.sample_rate_hz', 10)),
            noise=noise,
            seed=seed,
            speed=speed
        )
        count = feed_trace(classifier, trace)
        classifier.stop_monitoring()

        click.echo(f"Ingested {count} accelerometer samples ({trace.activity.value} profile)")
        _echo_context(classifier)

    except (ContextMonitorError, ValueError) as e:
        logger.error(f"Simulation failed: {e}")
        click.echo(f"Error running simulation: {e}", err=True)
        sys.exit(1)


@cli.command()
@click.argument('recording', type=click.Path(exists=True, dir_okay=False))
@click.option('--output', '-o', default=None,
              help='Write the timeline to this CSV file')
@click.pass_context
def replay(ctx, recording, output):
    """Replay a recorded sensor session (CSV) through the classifier."""
    config = ctx.obj['config']
    logger = ctx.obj['logger']

    try:
        frame = load_recording(recording)
        classifier = ContextClassifier.from_config(config)
        classifier.initialize()
        timeline = replay_recording(frame, classifier)
        classifier.stop_monitoring()

        click.echo(f"Replayed {len(frame)} readings from {recording}")
        summary = summarize_timeline(timeline)
        if not summary.empty:
            click.echo(summary.to_string(index=False))
        _echo_context(classifier)

        if output:
            timeline.to_csv(output, index=False)
            click.echo(f"Timeline written to: {output}")

    except (ContextMonitorError, ValueError) as e:
        logger.error(f"Replay failed: {e}")
        click.echo(f"Error replaying recording: {e}", err=True)
        sys.exit(1)


@cli.command()
@click.option('--json', 'as_json', is_flag=True, help='Print the table as JSON')
@click.pass_context
def thresholds(ctx, as_json):
    """Show the active threshold table."""
    config = ctx.obj['config']

    try:
        classifier = ContextClassifier.from_config(config)
    except (ContextMonitorError, ValueError) as e:
        click.echo(f"Error loading thresholds: {e}", err=True)
        sys.exit(1)

    table = threshold_table_as_dict(classifier.thresholds)
    if as_json:
        click.echo(json.dumps(table, indent=2))
        return

    click.echo(f"Confidence threshold: {config.get('classifier.confidence_threshold')}")
    for activity, values in table.items():
        fields = ', '.join(f"{key}={value}" for key, value in values.items() if value is not None)
        click.echo(f"  {activity}: {fields}")


@cli.command()
@click.option('--activity', '-a', type=ACTIVITY_CHOICES, default='WALKING',
              help='Activity the simulated sensor should produce')
@click.option('--seconds', '-s', type=float, default=10.0,
              help='How long to run the session')
@click.pass_context
def run(ctx, activity, seconds):
    """Run a live session fed by a simulated sensor in real time."""
    config = ctx.obj['config']
    logger = ctx.obj['logger']

    accelerometer = SimulatedSensorSource('accelerometer')
    location = SimulatedLocationSource()

    def on_change(snapshot, ui_mode):
        click.echo(f"[{time.strftime('%H:%M:%S')}] {describe(snapshot)} -> {ui_mode.value}")
        if ui_mode == UIMode.VOICE:
            click.echo(f"  Voice mode active: {VOICE_HINT}")

    try:
        session = ContextSession(config, on_change=on_change,
                                 accelerometer=accelerometer, location_source=location)
        session.start()
    except ContextMonitorError as e:
        logger.error(f"Failed to start session: {e}")
        click.echo(f"Error starting session: {e}", err=True)
        sys.exit(1)

    sample_rate = float(config.get('classifier.sample_rate_hz', 10))
    trace = generate_trace(ActivityState(activity.upper()), seconds=seconds, sample_rate_hz=sample_rate)

    try:
        fix = trace.location_fix()
        if fix is not None:
            location.emit(fix)
        for x, y, z in trace.samples:
            accelerometer.emit(float(x), float(y), float(z))
            time.sleep(1.0 / sample_rate)
    except KeyboardInterrupt:
        pass
    finally:
        session.poll_once()
        session.stop()

    status = session.get_status()
    click.echo(f"Session ended in {status['ui_mode']} mode: {describe(session.snapshot)}")


@cli.command()
@click.option('--key', required=True, help='Configuration key (e.g., classifier.window_size)')
@click.option('--value', required=True, help='Configuration value')
@click.pass_context
def config_set(ctx, key, value):
    """Set a configuration value."""
    config = ctx.obj['config']
    logger = ctx.obj['logger']

    try:
        # YAML scalars give booleans, ints and floats their natural types
        parsed = yaml.safe_load(value)
        config.set(key, parsed)
        config.save_config()

        click.echo(f"Configuration updated: {key} = {parsed}")
        logger.info(f"Configuration updated: {key} = {parsed}")

    except (ContextMonitorError, OSError, yaml.YAMLError) as e:
        logger.error(f"Failed to update configuration: {e}")
        click.echo(f"Error updating configuration: {e}", err=True)
        sys.exit(1)


@cli.command()
@click.option('--key', help='Specific configuration key to show')
@click.pass_context
def config_get(ctx, key):
    """Get configuration value(s)."""
    config = ctx.obj['config']

    if key:
        value = config.get(key)
        if value is not None:
            click.echo(f"{key}: {value}")
        else:
            click.echo(f"Configuration key '{key}' not found")
    else:
        click.echo(yaml.safe_dump(config.config, default_flow_style=False))


if __name__ == '__main__':
    cli()
