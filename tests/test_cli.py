import json
import logging

import pandas as pd
import pytest
import yaml
from click.testing import CliRunner

from context_monitor.cli import cli
from context_monitor.config import DEFAULT_CONFIG
from context_monitor.logging_setup import PACKAGE_LOGGER
from context_monitor.models import ActivityState
from context_monitor.synthetic import generate_trace


@pytest.fixture
def runner():
    yield CliRunner()
    # The CLI installs handlers bound to the runner's captured streams
    logging.getLogger(PACKAGE_LOGGER).handlers.clear()


def test_simulate_lifting(runner):
    with runner.isolated_filesystem():
        result = runner.invoke(cli, ['simulate', '--activity', 'LIFTING'])

    assert result.exit_code == 0, result.output
    assert 'Activity: LIFTING' in result.output
    assert 'UI mode: voice' in result.output
    assert 'Safety Check' in result.output


def test_simulate_driving_without_speed_is_idle(runner):
    with runner.isolated_filesystem():
        result = runner.invoke(cli, ['simulate', '--activity', 'driving', '--speed', '0'])

    assert result.exit_code == 0, result.output
    assert 'Activity: IDLE' in result.output


def test_thresholds_json(runner):
    with runner.isolated_filesystem():
        result = runner.invoke(cli, ['thresholds', '--json'])

    assert result.exit_code == 0, result.output
    table = json.loads(result.output)
    assert table['WALKING']['frequency'] == 1.5
    assert table['LIFTING']['confidence_ceiling'] == 0.95


def test_replay_writes_timeline(runner):
    with runner.isolated_filesystem():
        trace = generate_trace(ActivityState.WALKING, seconds=7)
        pd.DataFrame({
            'timestamp': [i / 10 for i in range(len(trace.samples))],
            'kind': 'accel',
            'x': trace.samples[:, 0],
            'y': trace.samples[:, 1],
            'z': trace.samples[:, 2],
        }).to_csv('walk.csv', index=False)

        result = runner.invoke(cli, ['replay', 'walk.csv', '--output', 'timeline.csv'])
        timeline = pd.read_csv('timeline.csv')

    assert result.exit_code == 0, result.output
    assert 'Activity: WALKING' in result.output
    assert len(timeline) == 70
    assert timeline['activity'].iloc[-1] == 'WALKING'


def test_replay_rejects_bad_recording(runner):
    with runner.isolated_filesystem():
        with open('bad.csv', 'w') as f:
            f.write('time,value\n0,1\n')
        result = runner.invoke(cli, ['replay', 'bad.csv'])

    assert result.exit_code == 1
    assert 'missing columns' in result.output


def test_config_set_and_get(runner):
    with runner.isolated_filesystem():
        with open('config.yaml', 'w') as f:
            yaml.safe_dump(DEFAULT_CONFIG, f)

        set_result = runner.invoke(cli, ['config-set', '--key', 'classifier.classify_every', '--value', '5'])
        get_result = runner.invoke(cli, ['config-get', '--key', 'classifier.classify_every'])

        with open('config.yaml') as f:
            saved = yaml.safe_load(f)

    assert set_result.exit_code == 0, set_result.output
    assert saved['classifier']['classify_every'] == 5
    assert 'classifier.classify_every: 5' in get_result.output


def test_config_set_without_file_fails(runner):
    with runner.isolated_filesystem():
        result = runner.invoke(cli, ['config-set', '--key', 'a.b', '--value', '1'])

    assert result.exit_code == 1


def test_missing_config_file(runner):
    with runner.isolated_filesystem():
        result = runner.invoke(cli, ['--config', 'nope.yaml', 'thresholds'])

    assert result.exit_code == 1
    assert 'Error loading configuration' in result.output


def test_invalid_classifier_config_is_rejected(runner):
    with runner.isolated_filesystem():
        config = {**DEFAULT_CONFIG, 'classifier': {**DEFAULT_CONFIG['classifier'], 'min_samples': 500}}
        with open('config.yaml', 'w') as f:
            yaml.safe_dump(config, f)

        result = runner.invoke(cli, ['simulate'])
        repaired = runner.invoke(cli, ['config-set', '--key', 'classifier.min_samples', '--value', '50'])
        rerun = runner.invoke(cli, ['simulate'])

    assert result.exit_code == 1
    assert 'invalid classifier settings' in result.output
    assert repaired.exit_code == 0, repaired.output
    assert rerun.exit_code == 0, rerun.output
