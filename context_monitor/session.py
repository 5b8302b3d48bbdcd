"""
Monitoring Session Module

Owns one classifier for the lifetime of a monitoring session, polls its
snapshot on an independent cadence and derives the UI mode from it.
"""

import threading
import time
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from .config import ConfigManager
from .context_detector import ContextClassifier
from .errors import SensorPermissionError
from .logging_setup import get_logger
from .models import ActivityState, ContextSnapshot, UIMode
from .presentation import describe, ui_mode_for


ChangeCallback = Callable[[ContextSnapshot, UIMode], None]


class ContextSession:
    """Drives a ContextClassifier and publishes context changes."""

    def __init__(self,
                 config: ConfigManager,
                 classifier: Optional[ContextClassifier] = None,
                 on_change: Optional[ChangeCallback] = None,
                 **collaborators):
        """
        Initialize the session.

        Args:
            config: Configuration manager instance
            classifier: Classifier to drive; built from config when omitted
            on_change: Called with (snapshot, ui_mode) when activity or mode changes
            **collaborators: Sources and providers for a config-built classifier
        """
        self.config = config
        self.logger = get_logger(__name__)
        self.classifier = classifier or ContextClassifier.from_config(config, **collaborators)
        self.on_change = on_change

        # State management
        self.is_running = False
        self.error: Optional[Exception] = None
        self.polling_thread: Optional[threading.Thread] = None
        self.stop_event = threading.Event()

        # Published context
        self.snapshot = ContextSnapshot()
        self.ui_mode = UIMode.NORMAL
        self.stats: Dict[str, Any] = {
            'polls': 0,
            'changes': 0,
            'seconds_by_activity': {activity.value: 0.0 for activity in ActivityState},
            'start_time': None,
        }
        self._last_poll: Optional[float] = None
        self._poll_lock = threading.Lock()

    def start(self) -> None:
        """
        Start the classifier and the polling loop.

        Raises:
            SensorPermissionError: Permissions were denied. The session
                records the error and stays stopped.
        """
        if self.is_running:
            self.logger.warning("Context session is already running")
            return

        self.logger.info("Starting context session")

        try:
            self.classifier.initialize()
        except SensorPermissionError as e:
            self.error = e
            self.logger.error(f"Context session cannot start: {e}")
            raise

        self.error = None
        self._last_poll = None
        self.is_running = True
        self.stats['start_time'] = datetime.now()
        self.stop_event.clear()
        self.polling_thread = threading.Thread(target=self._polling_loop, daemon=True)
        self.polling_thread.start()

        self.logger.info("Context session started")

    def stop(self) -> None:
        """Stop polling and release the classifier's sources."""
        if not self.is_running:
            self.classifier.stop_monitoring()
            return

        self.logger.info("Stopping context session")

        self.is_running = False
        self.stop_event.set()
        self.classifier.stop_monitoring()

        if (self.polling_thread and self.polling_thread.is_alive()
                and self.polling_thread is not threading.current_thread()):
            self.polling_thread.join(timeout=5)

        self.logger.info("Context session stopped")

    def _polling_loop(self) -> None:
        """Read the snapshot every poll interval until stopped."""
        interval = float(self.config.get('session.poll_interval_seconds', 1.0))

        while self.is_running and not self.stop_event.is_set():
            self.poll_once()
            self.stop_event.wait(interval)

    def poll_once(self) -> ContextSnapshot:
        """
        Take one snapshot, update stats and notify on changes.

        Returns:
            The snapshot that was read
        """
        with self._poll_lock:
            now = time.monotonic()
            snapshot = self.classifier.get_current_context()
            ui_mode = ui_mode_for(snapshot.activity)

            # Time is credited to the activity held since the previous poll
            if self._last_poll is not None:
                held = self.snapshot.activity.value
                self.stats['seconds_by_activity'][held] += now - self._last_poll
            self._last_poll = now
            self.stats['polls'] += 1

            changed = snapshot.activity != self.snapshot.activity or ui_mode != self.ui_mode
            self.snapshot = snapshot
            self.ui_mode = ui_mode
            if changed:
                self.stats['changes'] += 1

        if changed:
            self.logger.info(f"Context: {describe(snapshot)} | Mode: {ui_mode.value.upper()}")
            if self.on_change:
                try:
                    self.on_change(snapshot, ui_mode)
                except Exception as e:
                    self.logger.error(f"Context change callback failed: {e}")

        return snapshot

    def get_status(self) -> Dict[str, Any]:
        """Get current status of the session."""
        return {
            'is_running': self.is_running,
            'classifier_active': self.classifier.is_active(),
            'ui_mode': self.ui_mode.value,
            'context': self.snapshot.to_dict(),
            'stats': {
                **self.stats,
                'seconds_by_activity': dict(self.stats['seconds_by_activity']),
            },
            'rejected_samples': self.classifier.rejected_samples,
            'error': str(self.error) if self.error else None,
        }
