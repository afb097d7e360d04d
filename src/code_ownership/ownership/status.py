"""Process-wide ownership status shown to the user.

The state machine keeps the raw inputs (phase, record, configured flag,
visibility, last error) and derives the observable :class:`StatusSnapshot`
from them.  Errors are sticky: a new resolution moving to ``WORKING`` does not
hide an error, only a resolution that finishes (``IDLE``) clears it.

Label precedence, highest first:

    Error > Working > Idle with record > Idle not configured > Idle no record
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

from code_ownership.ownership.protocol import OwnershipRecord, Phase, StatusSnapshot

logger = logging.getLogger("code_ownership.ownership.status")

Listener = Callable[[StatusSnapshot], None]


@dataclass(frozen=True)
class StatusLabel:
    """Icon name plus text, as rendered by a status bar."""
    icon: str
    text: str

    def __str__(self) -> str:
        return f"$({self.icon}) {self.text}"


def label_for(snapshot: StatusSnapshot) -> StatusLabel:
    """Compute the user-visible label for a snapshot."""
    if snapshot.phase == Phase.ERROR:
        return StatusLabel("error", "Owner: error checking ownership!")
    if snapshot.phase == Phase.WORKING:
        return StatusLabel("loading~spin", "Owner: running...")
    if snapshot.record is not None:
        return StatusLabel("account", f"Owner: {snapshot.record.team_name}")
    if snapshot.configured is False:
        return StatusLabel("circle-slash", "Owner: not configured")
    return StatusLabel("warning", "Owner: none")


class StatusStateMachine:
    """Holds the single current status and notifies subscribers on change."""

    def __init__(self) -> None:
        self._phase = Phase.IDLE
        self._record: OwnershipRecord | None = None
        self._configured: bool | None = None
        self._visible = False
        self._error: str | None = None
        self._snapshot = StatusSnapshot()
        self._listeners: list[Listener] = []

    @property
    def snapshot(self) -> StatusSnapshot:
        return self._snapshot

    def label(self) -> StatusLabel:
        return label_for(self._snapshot)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns a function that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def set_phase(self, phase: Phase, error: str | None = None) -> None:
        if phase == Phase.ERROR:
            self._error = error or "unknown error"
        elif phase == Phase.IDLE:
            self._error = None
        self._phase = phase
        self._recompute()

    def apply(
        self,
        phase: Phase,
        record: OwnershipRecord | None,
        configured: bool | None,
        error: str | None = None,
    ) -> None:
        """Set phase, record and configured flag as one change."""
        self._record = record
        self._configured = configured
        self.set_phase(phase, error)

    def set_record(self, record: OwnershipRecord | None) -> None:
        self._record = record
        self._recompute()

    def set_configured(self, configured: bool | None) -> None:
        self._configured = configured
        self._recompute()

    def set_visible(self, visible: bool) -> None:
        self._visible = visible
        self._recompute()

    def _recompute(self) -> None:
        snapshot = StatusSnapshot(
            phase=Phase.ERROR if self._error is not None else self._phase,
            record=self._record,
            configured=self._configured,
            visible=self._visible,
            error=self._error,
        )
        if snapshot == self._snapshot:
            return
        self._snapshot = snapshot
        logger.debug("Status: %s", label_for(snapshot))
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception as exc:
                logger.warning("Status listener failed: %s", exc)
