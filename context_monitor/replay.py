"""
Recording Replay Module

Loads recorded sensor sessions from CSV and replays them through a
classifier, producing a timeline of the detected context.

Recording format (one row per reading, any order):

    timestamp,kind,x,y,z,latitude,longitude,accuracy,speed
    0.0,accel,0.1,0.2,9.8,,,,
    0.0,location,,,,34.05,-118.24,10,12.5

kind is one of accel, gyro, mag or location.
"""

from pathlib import Path
from typing import Union

import pandas as pd

from .errors import RecordingFormatError
from .logging_setup import get_logger
from .models import LocationFix, SensorKind


logger = get_logger(__name__)

MOTION_KINDS = {kind.value for kind in SensorKind}
LOCATION_KIND = 'location'
REQUIRED_COLUMNS = ('timestamp', 'kind')
MOTION_COLUMNS = ('x', 'y', 'z')
LOCATION_COLUMNS = ('latitude', 'longitude', 'accuracy')


def load_recording(path: Union[str, Path]) -> pd.DataFrame:
    """
    Load and validate a sensor recording.

    Args:
        path: CSV file to read

    Returns:
        DataFrame sorted by timestamp (stable, so equal timestamps keep file order)

    Raises:
        RecordingFormatError: If the file is missing columns or has unknown kinds
    """
    try:
        frame = pd.read_csv(path)
    except (OSError, pd.errors.ParserError, pd.errors.EmptyDataError) as e:
        raise RecordingFormatError(f"Cannot read recording {path}: {e}") from e

    return validate_recording(frame)


def validate_recording(frame: pd.DataFrame) -> pd.DataFrame:
    """Check columns and kinds, normalize kind names and sort by timestamp."""
    missing = [column for column in REQUIRED_COLUMNS if column not in frame.columns]
    if missing:
        raise RecordingFormatError(f"Recording is missing columns: {', '.join(missing)}")

    frame = frame.copy()
    frame['kind'] = frame['kind'].astype(str).str.strip().str.lower()

    unknown = set(frame['kind']) - MOTION_KINDS - {LOCATION_KIND}
    if unknown:
        raise RecordingFormatError(f"Unknown sample kinds: {', '.join(sorted(unknown))}")

    if frame['kind'].isin(MOTION_KINDS).any():
        _require_columns(frame, MOTION_COLUMNS, 'motion')
    if (frame['kind'] == LOCATION_KIND).any():
        _require_columns(frame, LOCATION_COLUMNS, 'location')

    return frame.sort_values('timestamp', kind='stable').reset_index(drop=True)


def _require_columns(frame: pd.DataFrame, columns, label: str) -> None:
    missing = [column for column in columns if column not in frame.columns]
    if missing:
        raise RecordingFormatError(f"Recording has {label} rows but no {', '.join(missing)} columns")


def _location_from_row(row) -> LocationFix:
    speed = row.get('speed')
    return LocationFix(
        latitude=float(row['latitude']),
        longitude=float(row['longitude']),
        accuracy=float(row['accuracy']),
        speed=None if speed is None or pd.isna(speed) else float(speed),
        timestamp=float(row['timestamp'])
    )


def replay(frame: pd.DataFrame, classifier) -> pd.DataFrame:
    """
    Feed a recording through an active classifier.

    Args:
        frame: Validated recording
        classifier: Initialized ContextClassifier

    Returns:
        Timeline DataFrame with one row per accelerometer sample:
        timestamp, activity, confidence
    """
    timeline = []

    for _, row in frame.iterrows():
        kind = row['kind']
        if kind == LOCATION_KIND:
            classifier.ingest_location_fix(_location_from_row(row))
            continue

        classifier.ingest_motion_sample((row['x'], row['y'], row['z']), SensorKind(kind))

        if kind == SensorKind.ACCEL.value:
            snapshot = classifier.get_current_context()
            timeline.append({
                'timestamp': row['timestamp'],
                'activity': snapshot.activity.value,
                'confidence': snapshot.confidence,
            })

    logger.info(f"Replayed {len(frame)} readings, {len(timeline)} accelerometer samples")
    return pd.DataFrame(timeline, columns=['timestamp', 'activity', 'confidence'])


def summarize_timeline(timeline: pd.DataFrame) -> pd.DataFrame:
    """Count samples per activity and the share of the timeline each covers."""
    if timeline.empty:
        return pd.DataFrame(columns=['activity', 'samples', 'share'])

    counts = timeline['activity'].value_counts()
    return pd.DataFrame({
        'activity': counts.index,
        'samples': counts.values,
        'share': (counts / counts.sum()).round(3).values,
    })
