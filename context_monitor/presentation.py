"""
Presentation Mapping Module

Maps a context snapshot to what the interface layer shows: the UI mode,
suggested tasks, quick actions and activity icons. Every mapping switches
exhaustively over ActivityState.
"""

from typing import Dict, List

from .models import ActivityState, ContextSnapshot, UIMode


UI_MODES: Dict[ActivityState, UIMode] = {
    ActivityState.IDLE: UIMode.NORMAL,
    ActivityState.WALKING: UIMode.NORMAL,
    ActivityState.LIFTING: UIMode.VOICE,
    ActivityState.OPERATING_MACHINERY: UIMode.VOICE,
    ActivityState.DRIVING: UIMode.MINIMAL,
}

ACTIVITY_ICONS: Dict[ActivityState, str] = {
    ActivityState.IDLE: 'person',
    ActivityState.WALKING: 'directions-walk',
    ActivityState.LIFTING: 'fitness-center',
    ActivityState.OPERATING_MACHINERY: 'build',
    ActivityState.DRIVING: 'directions-car',
}

QUICK_ACTIONS: Dict[ActivityState, List[str]] = {
    ActivityState.IDLE: ['Daily Report'],
    ActivityState.WALKING: ['Site Photo', 'Inspection'],
    ActivityState.LIFTING: [],
    ActivityState.OPERATING_MACHINERY: [],
    ActivityState.DRIVING: [],
}

VOICE_HINT = 'Say "Log material" or "Report issue"'


def ui_mode_for(activity: ActivityState) -> UIMode:
    """Hands-busy activities get voice mode, driving gets the minimal screen."""
    return UI_MODES[ActivityState(activity)]


def activity_icon(activity: ActivityState) -> str:
    return ACTIVITY_ICONS[ActivityState(activity)]


def quick_actions(activity: ActivityState) -> List[str]:
    return list(QUICK_ACTIONS[ActivityState(activity)])


def priority_tasks(snapshot: ContextSnapshot) -> List[str]:
    """
    Pick the suggested tasks for a context.

    Lifting takes precedence over beacon zones; with neither, the general
    office tasks are suggested.

    Args:
        snapshot: Current context snapshot

    Returns:
        Ordered list of task labels
    """
    if snapshot.activity == ActivityState.LIFTING:
        return ['Safety Check', 'Material Verification']
    if snapshot.nearest_beacon:
        return [f"Zone: {snapshot.nearest_beacon}", 'Inspect Equipment']
    return ['Daily Report', 'Task Assignment', 'Site Photos']


def format_confidence(confidence: float) -> str:
    return f"{round(confidence * 100)}%"


def describe(snapshot: ContextSnapshot) -> str:
    """One-line summary such as 'WALKING • 90%'."""
    return f"{snapshot.activity.value} • {format_confidence(snapshot.confidence)}"
